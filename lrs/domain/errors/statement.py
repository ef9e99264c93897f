"""Statement errors.

Every failure the statement engine can report to its caller lives here,
grouped by ErrorKind:

- StatementBadRequestError: caller input is malformed or unsupported
- StatementConflictError: submission collides with accepted content
- StatementNotFoundError: a targeted lookup or reference has no match
- StatementInternalError: the operation is not supported at all

Errors are raised at the point of detection and propagate unchanged.
Nothing in this hierarchy is transient, so callers must not retry.
"""

from __future__ import annotations

from lrs.domain.exceptions import ErrorKind, LrsError


class StatementError(LrsError):
    """Base exception for statement operations."""

    pass


# =============================================================================
# Bad request
# =============================================================================


class StatementBadRequestError(StatementError):
    """Raised when caller input cannot be processed as given."""

    kind = ErrorKind.BAD_REQUEST


class InvalidIdentifierError(StatementBadRequestError):
    """Raised when a value that must be a UUID is not one.

    Attributes:
        raw_value: The rejected input, as received.
    """

    def __init__(self, raw_value: object) -> None:
        self.raw_value = raw_value
        super().__init__(f"The provided identifier is not a valid UUID: {raw_value!r}")


class InvalidTimestampError(StatementBadRequestError):
    """Raised when an ISO-8601 timestamp cannot be parsed."""

    def __init__(self, raw_value: object) -> None:
        self.raw_value = raw_value
        super().__init__(f"The provided timestamp is not valid ISO-8601: {raw_value!r}")


class InvalidQueryParameterError(StatementBadRequestError):
    """Raised when a query parameter is unknown or has an unusable value."""

    pass


class UnsupportedAgentQueryError(StatementBadRequestError):
    """Raised when an agent filter cannot be turned into a predicate.

    Covers anonymous groups (no identifier) and agents whose identifying
    property is missing or ambiguous.
    """

    pass


class MissingStatementIdError(StatementBadRequestError):
    """Raised when a targeted write omits the statementId parameter."""

    def __init__(self) -> None:
        super().__init__("The statementId parameter is missing!")


class StatementIdMismatchError(StatementBadRequestError):
    """Raised when the statementId parameter and payload id disagree.

    Attributes:
        parameter_id: Normalized id from the request parameters.
        payload_id: Normalized id carried by the statement payload.
    """

    def __init__(self, parameter_id: str, payload_id: str) -> None:
        self.parameter_id = parameter_id
        self.payload_id = payload_id
        super().__init__(
            f"Statement ID query parameter ({parameter_id}) doesn't match "
            f"the given statement property ({payload_id})"
        )


class DuplicateBatchStatementIdError(StatementBadRequestError):
    """Raised when one batch carries the same statement id more than once."""

    def __init__(self, statement_id: str) -> None:
        self.statement_id = statement_id
        super().__init__(f"Statement ID {statement_id} appears more than once in the batch")


# =============================================================================
# Conflict
# =============================================================================


class StatementConflictError(StatementError):
    """Raised when a resubmitted id carries different content.

    Attributes:
        statement_id: The id shared by the existing and incoming statement.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, statement_id: str, message: str | None = None) -> None:
        self.statement_id = statement_id
        super().__init__(
            message
            or (
                f"An existing statement already exists with the same ID "
                f"({statement_id}) and is different from the one provided."
            )
        )


class VoidingConflictError(StatementConflictError):
    """Raised when a voiding statement targets another voiding statement."""

    def __init__(self, statement_id: str) -> None:
        super().__init__(statement_id, "Voiding statements cannot be voided.")


# =============================================================================
# Not found
# =============================================================================


class StatementNotFoundError(StatementError):
    """Raised when a targeted statement lookup yields no match."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, statement_id: str, message: str | None = None) -> None:
        self.statement_id = statement_id
        super().__init__(message or f"Statement {statement_id} does not exist.")


class ReferencedStatementNotFoundError(StatementNotFoundError):
    """Raised when a StatementRef points at an id that is not stored."""

    def __init__(self, statement_id: str) -> None:
        super().__init__(
            statement_id, f"Referenced statement {statement_id} does not exist!"
        )


# =============================================================================
# Internal
# =============================================================================


class StatementInternalError(StatementError):
    """Raised for operations the statement store never supports."""

    kind = ErrorKind.INTERNAL_ERROR


class StatementDeletionError(StatementInternalError):
    """Raised on every delete attempt - statements can only be voided."""

    def __init__(self) -> None:
        super().__init__("Statements cannot be deleted, only voided!")
