class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced student/teacher has no underlying record."""


class AttendanceDeniedError(DomainError):
    """Raised by the attendance write path when marking is not allowed.

    ``reason`` is end-user text, identical to the one ``can_mark`` returns.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class LockConflictError(AttendanceDeniedError):
    """Raised when the store's uniqueness constraint rejects a lock claim."""


class StoreError(DomainError):
    """Raised when a read/write against the record store fails unexpectedly."""
