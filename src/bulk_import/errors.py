"""
Error taxonomy for bulk imports.

Configuration errors are raised before any statement reaches the database and
are never retried. Storage errors wrap the underlying driver exception and are
raised after the surrounding transaction has been rolled back.
"""

from typing import Any


class BulkImportError(Exception):
    """Base exception for bulk import errors."""

    pass


class ConfigurationError(BulkImportError):
    """Invalid caller input detected before any mutation."""

    pass


class UnknownMergeModeError(ConfigurationError):
    """Raised when the requested merge mode is not supported."""

    def __init__(self, mode: Any):
        self.mode = mode
        super().__init__(f"Unknown merge mode: {mode!r}")


class ColumnNotFoundError(ConfigurationError):
    """Raised when a column cannot be resolved in a mapping or type catalog."""

    def __init__(self, column: str, where: str = "column types"):
        self.column = column
        self.where = where
        super().__init__(f"Column {column!r} not found in {where}")


class DuplicateTargetColumnError(ConfigurationError):
    """Raised when two source columns are mapped to the same target column."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Target column {column!r} is mapped more than once")


class InvalidCopyOptionsError(ConfigurationError):
    """Raised when COPY options are inconsistent."""

    pass


class SchemaLookupError(BulkImportError):
    """Raised when the target relation is missing or its metadata is inaccessible."""

    def __init__(self, relation: str, reason: str = "relation not found"):
        self.relation = relation
        super().__init__(f"Schema lookup failed for {relation!r}: {reason}")


class StorageOperationError(BulkImportError):
    """Raised when an INSERT, UPDATE, TRUNCATE, COPY or index creation fails."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Storage operation failed: {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
