"""Base exception classes for the statement store domain layer."""

from enum import Enum


class ErrorKind(str, Enum):
    """Coarse error category consumed by the presentation layer.

    The view layer maps each kind onto its own status vocabulary
    (e.g. HTTP 400/409/404/500); the domain never speaks HTTP.
    """

    BAD_REQUEST = "bad_request"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


class LrsError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    This enables consistent error handling across the application.

    Attributes:
        kind: Category of the failure, overridden by subclasses.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
