"""Exceptions for structured-response parsing."""

from codegen_bot.models import StageKind

EXCERPT_LENGTH = 200


class ResponseParseError(Exception):
    """Base exception for structured-response parsing."""


class StageParseError(ResponseParseError):
    """Raised when a stage response cannot be turned into its typed payload.

    Carries the stage and a short excerpt of the offending response so the
    caller can report which stage failed and why.
    """

    def __init__(self, stage: StageKind | str, message: str, excerpt: str = "") -> None:
        self.stage = StageKind(stage) if isinstance(stage, str) else stage
        self.reason = message
        self.excerpt = excerpt[:EXCERPT_LENGTH]
        detail = f"[{self.stage.value}] {message}"
        if self.excerpt:
            detail += f" (response excerpt: {self.excerpt!r})"
        super().__init__(detail)
