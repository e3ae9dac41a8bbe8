"""
Errors raised by the data-access layer.

Every DAO operation raises one of these (or ValueError for bad arguments).
Nothing here is retried or logged by the layer itself; callers decide.

    InvalidIdentifierError  object has no record id, nothing was sent
    ConversionError         a record did not match the object type
    StoreError              the store failed; original error on .error
    NotFoundError           the store returned no record and no error
"""

from typing import Any, Optional


class CloudRecordsError(Exception):
    """Base exception for all data-access failures."""

    def __init__(self, message: str, operation: str, details: Optional[dict] = None) -> None:
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return f"[{self.operation}] {self.message}"


class InvalidIdentifierError(CloudRecordsError):
    """The object carries no record id. Detected locally."""

    def __init__(self, operation: str, record_type: str) -> None:
        super().__init__(
            message=f"{record_type} object has no record id",
            operation=operation,
            details={"record_type": record_type},
        )
        self.record_type = record_type


class ConversionError(CloudRecordsError):
    """
    A record could not be turned into the requested object type.

    Raised by DAO operations in place of whatever the conversion raised;
    the original exception is kept as __cause__.
    """

    def __init__(self, record_type: str, operation: str = "convert", reason: str = None) -> None:
        message = f"unable to convert {record_type} record"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message=message, operation=operation, details={"record_type": record_type})
        self.record_type = record_type


class StoreError(CloudRecordsError):
    """Wraps an error reported by the store. The platform error is on .error."""

    def __init__(self, operation: str, error: BaseException) -> None:
        super().__init__(
            message=f"{type(error).__name__}: {error}",
            operation=operation,
            details={"error_type": type(error).__name__},
        )
        self.error = error


class NotFoundError(CloudRecordsError):
    """The store answered with no record and no error."""

    def __init__(self, operation: str, record_id: Any = None) -> None:
        message = "store returned no record"
        if record_id is not None:
            message = f"no record with id {record_id}"
        super().__init__(message=message, operation=operation, details={"record_id": str(record_id)})
        self.record_id = record_id
