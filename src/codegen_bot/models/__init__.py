"""Data models for the code generation pipeline."""

from codegen_bot.models.diff_models import DiffCheckResult, DiffHunk, DiffStats, FileDiff
from codegen_bot.models.file_models import (
    FileSnapshot,
    GeneratedFileSet,
    contents_of,
    snapshot_mapping,
)
from codegen_bot.models.report_models import (
    FileFindingCounts,
    FindingCategory,
    FindingSeverity,
    PipelineResult,
    PipelineStatus,
    ToolExecutionResult,
    ValidationFinding,
    ValidationReport,
)
from codegen_bot.models.stage_models import (
    ChangeOperation,
    ContextRequest,
    CreateFile,
    DeleteFile,
    IntentSpec,
    ModifyFile,
    PatchPlan,
    PlannedChange,
    PlannedPatch,
    StageKind,
    ToolCallRequest,
)

__all__ = [
    "ChangeOperation",
    "ContextRequest",
    "CreateFile",
    "DeleteFile",
    "DiffCheckResult",
    "DiffHunk",
    "DiffStats",
    "FileDiff",
    "FileFindingCounts",
    "FileSnapshot",
    "FindingCategory",
    "FindingSeverity",
    "GeneratedFileSet",
    "IntentSpec",
    "ModifyFile",
    "PatchPlan",
    "PipelineResult",
    "PipelineStatus",
    "PlannedChange",
    "PlannedPatch",
    "StageKind",
    "ToolCallRequest",
    "ToolExecutionResult",
    "ValidationFinding",
    "ValidationReport",
    "contents_of",
    "snapshot_mapping",
]
