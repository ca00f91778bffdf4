"""Typed payloads exchanged between pipeline stages."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
    model_validator,
)

from codegen_bot.models.diff_models import DiffHunk


class StageKind(str, Enum):
    CONTEXT = "context"
    INTENT = "intent"
    PLAN = "plan"
    GENERATE = "generate"
    REPAIR = "repair"
    REVIEW = "review"


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


# ---------------------------------------------------------------------------
# Stage 0: context gathering
# ---------------------------------------------------------------------------


class ToolCallRequest(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    tool: StrictStr
    args: list[StrictStr] = Field(default_factory=list)
    working_directory: str = Field(default=".", alias="workingDirectory")
    reason: str = ""


class ContextRequest(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    needs_context: StrictBool = Field(alias="needsContext")
    tool_calls: list[ToolCallRequest] = Field(default_factory=list, alias="toolCalls")
    context_summary: str = Field(default="", alias="contextSummary")


# ---------------------------------------------------------------------------
# Stage 1: intent
# ---------------------------------------------------------------------------


class IntentSpec(BaseModel):
    """What the user asked for, as understood by the model.

    Every field except ``reason`` is required and strictly typed; a partially
    understood intent is rejected at the parser boundary.
    """

    model_config = ConfigDict(frozen=False, populate_by_name=True)

    feature: StrictStr
    requirements: list[StrictStr]
    target_files: list[StrictStr] = Field(alias="targetFiles")
    dependencies: list[StrictStr]
    needs_changes: StrictBool = Field(alias="needsChanges")
    reason: str = ""

    @field_validator("target_files", "dependencies")
    @classmethod
    def _as_set(cls, values: list[str]) -> list[str]:
        return _dedupe(values)


# ---------------------------------------------------------------------------
# Stage 2: plan (descriptive only)
# ---------------------------------------------------------------------------


class PlannedChange(BaseModel):
    model_config = ConfigDict(frozen=False)

    type: Literal["add", "replace", "remove"]
    target: str
    description: str
    location: str | None = None
    dependencies: list[str] = Field(default_factory=list)


class PlannedPatch(BaseModel):
    # Unknown keys (including any code the model tried to embed) are ignored
    model_config = ConfigDict(frozen=False, populate_by_name=True, extra="ignore")

    path: str = Field(alias="filename")
    operation: Literal["create", "modify", "delete"]
    purpose: str = ""
    changes: list[PlannedChange] = Field(default_factory=list)


class PatchPlan(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    patches: list[PlannedPatch] = Field(default_factory=list)
    implementation_notes: list[str] = Field(default_factory=list, alias="implementationNotes")

    def paths(self) -> list[str]:
        return _dedupe([patch.path for patch in self.patches])


# ---------------------------------------------------------------------------
# Stage 3/4: generated change operations
# ---------------------------------------------------------------------------


class CreateFile(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    operation: Literal["create"] = "create"
    path: str = Field(alias="filename")
    content: str


class ModifyFile(BaseModel):
    """Modification carried as a diff, full content, or both.

    When both are present the diff is tried first and the content is the
    fallback.
    """

    model_config = ConfigDict(frozen=False, populate_by_name=True)

    operation: Literal["modify"] = "modify"
    path: str = Field(alias="filename")
    unified_diff: str | None = Field(default=None, alias="unifiedDiff")
    diff_hunks: list[DiffHunk] | None = Field(default=None, alias="diffHunks")
    content: str | None = None

    @model_validator(mode="after")
    def _require_payload(self) -> "ModifyFile":
        if not self.has_diff and self.content is None:
            raise ValueError(
                f"modify of '{self.path}' needs unifiedDiff, diffHunks or content"
            )
        return self

    @property
    def has_diff(self) -> bool:
        return bool(self.unified_diff and self.unified_diff.strip()) or bool(self.diff_hunks)


class DeleteFile(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    operation: Literal["delete"] = "delete"
    path: str = Field(alias="filename")


ChangeOperation = Annotated[
    CreateFile | ModifyFile | DeleteFile,
    Field(discriminator="operation"),
]
