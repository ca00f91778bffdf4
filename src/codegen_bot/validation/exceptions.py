"""Exceptions for validation operations.

Note: Names chosen to avoid collisions with pydantic.ValidationError.
"""


class ValidationEngineError(Exception):
    """Base exception for all validation operations."""


class ValidationCheckError(ValidationEngineError):
    """Raised when one external check fails to run or produce parseable output."""

    def __init__(self, check_name: str, message: str) -> None:
        self.check_name = check_name
        super().__init__(f"{check_name}: {message}")


class WorkspaceError(ValidationEngineError):
    """Raised when the disposable workspace cannot be materialized."""
