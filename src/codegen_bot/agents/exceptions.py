"""Exceptions for agent (model call) operations."""

from codegen_bot.models import StageKind


class AgentError(Exception):
    """Base exception for all agent operations."""


class ModelCallError(AgentError):
    """Raised when every configured model provider fails for a call."""


class StageTimeoutError(AgentError):
    """Raised when a stage's model call exceeds its timeout."""

    def __init__(self, stage: StageKind, timeout_seconds: float) -> None:
        self.stage = stage
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"[{stage.value}] model call timed out after {timeout_seconds:.0f}s"
        )


class ContextGatherError(AgentError):
    """Raised when the context stage fails; the pipeline continues without context."""
