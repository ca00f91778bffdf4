"""Diff engine: compute, validate, apply and reverse line-based patches."""

from codegen_bot.diff.engine import (
    DEFAULT_CONTEXT_LINES,
    DEFAULT_MAX_CHANGE_RATIO,
    apply_diff,
    apply_file_diffs,
    check_diff_size,
    compute_diff,
    diff_stats,
    reverse_diff,
    summarize_diffs,
    validate_diff_against_file,
    validate_diff_structure,
)
from codegen_bot.diff.exceptions import (
    DiffApplyError,
    DiffError,
    DiffStructureError,
    OversizedDiffError,
)
from codegen_bot.diff.unified import (
    diff_from_hunks,
    diff_from_unified,
    format_unified_diff,
    parse_unified_diff,
)

__all__ = [
    "DEFAULT_CONTEXT_LINES",
    "DEFAULT_MAX_CHANGE_RATIO",
    "DiffApplyError",
    "DiffError",
    "DiffStructureError",
    "OversizedDiffError",
    "apply_diff",
    "apply_file_diffs",
    "check_diff_size",
    "compute_diff",
    "diff_from_hunks",
    "diff_from_unified",
    "diff_stats",
    "format_unified_diff",
    "parse_unified_diff",
    "reverse_diff",
    "summarize_diffs",
    "validate_diff_against_file",
    "validate_diff_structure",
]
