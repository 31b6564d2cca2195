"""Error types raised by the audit core."""

from enum import StrEnum


class AuditError(Exception):
    """Base class for audit core errors."""


class ValidationError(AuditError):
    """Raised when a raw event is missing required fields."""

    def __init__(self, field_name: str, message: str | None = None) -> None:
        self.field_name = field_name
        super().__init__(message or f"Missing required field: {field_name}")


class DiffTypeMismatchError(AuditError):
    """Raised when the same field holds incompatible types before and after."""

    def __init__(self, field_name: str, old_value: object, new_value: object) -> None:
        self.field_name = field_name
        self.old_value = old_value
        self.new_value = new_value
        super().__init__(
            f"Type mismatch for {field_name}: "
            f"{type(old_value).__name__} -> {type(new_value).__name__}"
        )


class BatchErrorCode(StrEnum):
    ALREADY_FINISHED = "already_finished"
    UNKNOWN_BATCH = "unknown_batch"


class BatchError(AuditError):
    """Raised on batch lifecycle misuse."""

    def __init__(self, code: BatchErrorCode, batch_id: str) -> None:
        self.code = code
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id}: {code.value}")


class StoreError(AuditError):
    """Raised by log store adapters when a write fails."""


class QueryErrorCode(StrEnum):
    INVALID_RANGE = "invalid_range"


class QueryError(AuditError):
    """Raised for malformed history queries."""

    def __init__(self, code: QueryErrorCode, message: str) -> None:
        self.code = code
        super().__init__(message)
