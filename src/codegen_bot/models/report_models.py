"""Report models for validation, tool execution and pipeline runs."""

from collections import Counter
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from codegen_bot.models.diff_models import FileDiff
from codegen_bot.models.stage_models import IntentSpec, PatchPlan


class FindingSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FindingCategory(str, Enum):
    TYPESCRIPT = "typescript"
    ESLINT = "eslint"
    BUILD = "build"
    SOLIDITY = "solidity"
    HEURISTIC = "heuristic"
    IMPORTS = "imports"
    MODEL_REVIEW = "model_review"


class ValidationFinding(BaseModel):
    model_config = ConfigDict(frozen=False)

    file: str                     # Relative path, "" when not attributable
    line: int | None = None
    column: int | None = None
    message: str
    severity: FindingSeverity
    category: FindingCategory
    code: str | None = None       # "TS2304", ESLint rule id, ...
    suggestion: str | None = None


class FileFindingCounts(BaseModel):
    model_config = ConfigDict(frozen=False)

    errors: int = 0
    warnings: int = 0
    infos: int = 0


class ValidationReport(BaseModel):
    model_config = ConfigDict(frozen=False)

    success: bool                                   # True if no ERROR-severity findings
    findings: list[ValidationFinding] = Field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    by_file: dict[str, FileFindingCounts] = Field(default_factory=dict)
    checks_run: list[str] = Field(default_factory=list)
    checks_failed: list[str] = Field(default_factory=list)
    duration_seconds: float | None = None
    validated_at: datetime = Field(default_factory=datetime.now)

    def errors(self) -> list[ValidationFinding]:
        return [f for f in self.findings if f.severity == FindingSeverity.ERROR]

    def findings_for(self, path: str) -> list[ValidationFinding]:
        return [f for f in self.findings if f.file == path]

    def counts_by_category(self) -> dict[str, int]:
        return dict(Counter(f.category.value for f in self.findings))


class ToolExecutionResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    success: bool
    output: str = ""
    error: str | None = None
    elapsed_ms: int = 0


class PipelineStatus(str, Enum):
    UNCHANGED = "unchanged"
    SUCCESS = "success"
    KNOWN_ISSUES = "known_issues"


class PipelineResult(BaseModel):
    """Outcome of one pipeline run handed back to the caller."""

    model_config = ConfigDict(frozen=False)

    run_id: str
    status: PipelineStatus
    files: dict[str, str] = Field(default_factory=dict)
    diffs: list[FileDiff] = Field(default_factory=list)
    deleted_files: list[str] = Field(default_factory=list)
    failed_files: list[str] = Field(default_factory=list)  # Diffs rejected during materialization
    intent: IntentSpec | None = None
    plan: PatchPlan | None = None
    report: ValidationReport | None = None
    warnings: list[str] = Field(default_factory=list)
    context_summary: str = ""
    repair_attempted: bool = False
