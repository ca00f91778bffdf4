"""Exceptions for tool-call execution."""


class ToolExecutionError(Exception):
    """Base exception for tool-call execution."""


class ToolNotAllowedError(ToolExecutionError):
    """Raised when a command, argument or working directory is rejected."""
