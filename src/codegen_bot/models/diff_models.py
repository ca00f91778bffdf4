"""Models for line-based file diffs."""

from pydantic import BaseModel, ConfigDict, Field

CONTEXT_PREFIX = " "
ADD_PREFIX = "+"
REMOVE_PREFIX = "-"


class DiffHunk(BaseModel):
    """One contiguous edit region of a unified diff.

    ``lines`` holds the tagged lines exactly as they appear in unified text:
    a one-character prefix (space, ``+`` or ``-``) followed by the line body.
    Field aliases match the camelCase keys used in model responses.
    """

    model_config = ConfigDict(frozen=False, populate_by_name=True)

    old_start: int = Field(alias="oldStart")
    old_lines: int = Field(alias="oldLines")
    new_start: int = Field(alias="newStart")
    new_lines: int = Field(alias="newLines")
    lines: list[str] = Field(default_factory=list)

    @property
    def header(self) -> str:
        return (
            f"@@ -{self.old_start},{self.old_lines} "
            f"+{self.new_start},{self.new_lines} @@"
        )

    def counted_old_lines(self) -> int:
        """Number of context + removed lines actually present."""
        return sum(1 for line in self.lines if line[:1] in (CONTEXT_PREFIX, REMOVE_PREFIX))

    def counted_new_lines(self) -> int:
        """Number of context + added lines actually present."""
        return sum(1 for line in self.lines if line[:1] in (CONTEXT_PREFIX, ADD_PREFIX))

    def old_text_lines(self) -> list[str]:
        return [line[1:] for line in self.lines if line[:1] in (CONTEXT_PREFIX, REMOVE_PREFIX)]

    def new_text_lines(self) -> list[str]:
        return [line[1:] for line in self.lines if line[:1] in (CONTEXT_PREFIX, ADD_PREFIX)]


class FileDiff(BaseModel):
    """Complete patch for one file.

    ``raw_unified_text`` is the canonical serialization and ``hunks`` the
    parsed form; the diff package keeps the two in agreement.
    """

    model_config = ConfigDict(frozen=False)

    path: str  # Relative path from project root
    hunks: list[DiffHunk] = Field(default_factory=list)
    raw_unified_text: str = ""


class DiffStats(BaseModel):
    model_config = ConfigDict(frozen=False)

    additions: int = 0
    deletions: int = 0
    hunks: int = 0
    files: int = 0


class DiffCheckResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
