"""Validation of candidate file sets in a disposable workspace."""

from codegen_bot.validation.checks import (
    BuildCheck,
    CommandCheck,
    CommandOutput,
    ESLintCheck,
    HeuristicCheck,
    ModelReviewCheck,
    ReferenceCheck,
    SolidityCheck,
    TypeScriptCheck,
    ValidationCheck,
    default_checks,
    run_command,
)
from codegen_bot.validation.engine import ValidationEngine, build_report
from codegen_bot.validation.exceptions import (
    ValidationCheckError,
    ValidationEngineError,
    WorkspaceError,
)
from codegen_bot.validation.heuristics import check_references, scan_source
from codegen_bot.validation.workspace import disposable_workspace, filter_files, should_skip

__all__ = [
    "BuildCheck",
    "CommandCheck",
    "CommandOutput",
    "ESLintCheck",
    "HeuristicCheck",
    "ModelReviewCheck",
    "ReferenceCheck",
    "SolidityCheck",
    "TypeScriptCheck",
    "ValidationCheck",
    "ValidationCheckError",
    "ValidationEngine",
    "ValidationEngineError",
    "WorkspaceError",
    "build_report",
    "check_references",
    "default_checks",
    "disposable_workspace",
    "filter_files",
    "run_command",
    "scan_source",
    "should_skip",
]
