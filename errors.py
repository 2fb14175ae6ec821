"""
Migration error taxonomy for Mediastore.

Only these escape a migration step:
- StructuralConflict: requested schema change contradicts the existing schema
- StoreFailure: SQLite raised while the step was running

Unparseable legacy rows are not errors - the tolerant reader reports them
and the step skips the row.
"""

from typing import Optional


class MigrationError(Exception):
    """Base class for failures that abort a migration run."""

    def __init__(self, message: str, version: Optional[int] = None):
        super().__init__(message)
        self.version = version

    def __str__(self) -> str:
        message = super().__str__()
        if self.version is None:
            return message
        return f"[migration {self.version}] {message}"


class StructuralConflict(MigrationError):
    """Schema state that an additive change cannot reconcile."""


class StoreFailure(MigrationError):
    """I/O or transaction failure while executing a step."""
