"""ISO-8601 conversion helpers.

`storedAt` is kept as a native timezone-aware datetime so stores can
compare it natively; `statement.stored` and `statement.timestamp` are
the ISO-8601 strings clients see.
"""

from __future__ import annotations

from datetime import datetime, timezone

from lrs.domain.errors.statement import InvalidTimestampError


def parse_iso8601(raw: object) -> datetime:
    """Parse an ISO-8601 string into a timezone-aware UTC datetime.

    Naive values are assumed to be UTC. A trailing "Z" is accepted.

    Raises:
        InvalidTimestampError: If `raw` is not a parsable ISO-8601 string.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidTimestampError(raw)
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidTimestampError(raw) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso8601(moment: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with millisecond precision.

    Example:
        >>> to_iso8601(datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc))
        '2026-01-15T10:00:00.000Z'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
