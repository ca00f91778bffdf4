"""Pure helper functions for materializing and repairing generated files.

All functions are stateless; callers log the warnings they return.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from codegen_bot.diff import (
    DiffError,
    apply_diff,
    diff_from_hunks,
    diff_from_unified,
)
from codegen_bot.diff.engine import DEFAULT_MAX_CHANGE_RATIO, MIN_LINES_FOR_RATIO
from codegen_bot.models import (
    ChangeOperation,
    CreateFile,
    DeleteFile,
    FileDiff,
    FindingSeverity,
    ModifyFile,
    ValidationFinding,
    ValidationReport,
)
from codegen_bot.orchestrator.exceptions import RepairMismatchError


@dataclass
class MaterializedFiles:
    files: dict[str, str]
    deleted_files: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def is_safe_path(path: str) -> bool:
    """True for a non-empty relative path that stays inside the project."""
    if not path or path.startswith(("/", "\\")) or "\\" in path:
        return False
    posix = PurePosixPath(path)
    return not posix.is_absolute() and ".." not in posix.parts


def operation_diff(operation: ModifyFile) -> FileDiff:
    """Build the FileDiff carried by a modify operation.

    Raises:
        DiffStructureError: If the unified text cannot be parsed.
    """
    if operation.diff_hunks:
        return diff_from_hunks(operation.path, operation.diff_hunks)
    return diff_from_unified(operation.path, operation.unified_diff or "")


def _latest_per_path(
    operations: list[ChangeOperation],
    warnings: list[str],
) -> list[ChangeOperation]:
    latest: dict[str, ChangeOperation] = {}
    for operation in operations:
        if operation.path in latest:
            warnings.append(f"{operation.path}: multiple operations returned; using the last one")
        latest[operation.path] = operation
    return list(latest.values())


def materialize_operations(
    files: Mapping[str, str],
    operations: list[ChangeOperation],
    max_change_ratio: float | None = DEFAULT_MAX_CHANGE_RATIO,
    min_lines_for_ratio: int = MIN_LINES_FOR_RATIO,
) -> MaterializedFiles:
    """Apply change operations to a copy of ``files``.

    A modify whose diff fails falls back to its full content when present;
    otherwise the prior content is kept and the path is listed in
    ``failed_files``. No file is ever left half-patched.

    Args:
        files: Prior path -> content mapping (not mutated).
        operations: Operations in model order; the last one per path wins.
        max_change_ratio: Rewrite guard passed to apply_diff.
        min_lines_for_ratio: Files shorter than this skip the rewrite guard.

    Returns:
        MaterializedFiles with the new mapping and what happened on the way.
    """
    result = MaterializedFiles(files=dict(files))
    for operation in _latest_per_path(operations, result.warnings):
        path = operation.path
        if not is_safe_path(path):
            result.warnings.append(f"{path}: unsafe path ignored")
            continue

        if isinstance(operation, DeleteFile):
            if path in result.files:
                del result.files[path]
                result.deleted_files.append(path)
            else:
                result.warnings.append(f"{path}: delete of unknown file ignored")
            continue

        if isinstance(operation, CreateFile):
            result.files[path] = operation.content
            continue

        prior = result.files.get(path)
        if prior is None:
            if operation.content is not None:
                result.files[path] = operation.content
                result.warnings.append(f"{path}: modify of unknown file treated as create")
            else:
                result.failed_files.append(path)
                result.warnings.append(f"{path}: diff targets unknown file; discarded")
            continue

        if operation.has_diff:
            try:
                result.files[path] = apply_diff(
                    prior,
                    operation_diff(operation),
                    max_change_ratio=max_change_ratio,
                    min_lines_for_ratio=min_lines_for_ratio,
                )
                continue
            except DiffError as exc:
                if operation.content is None:
                    result.failed_files.append(path)
                    result.warnings.append(f"{path}: diff discarded, prior content kept: {exc}")
                    continue
                result.warnings.append(f"{path}: diff discarded, using full content: {exc}")

        result.files[path] = operation.content or ""
    return result


def _finding_path(finding: ValidationFinding) -> str:
    return (finding.file or "").removeprefix("./")


def offending_files(report: ValidationReport, files: Mapping[str, str]) -> list[str]:
    """Return paths in ``files`` that carry Error findings, in file order."""
    error_paths = {
        _finding_path(finding)
        for finding in report.findings
        if finding.severity == FindingSeverity.ERROR and finding.file
    }
    return [path for path in files if path in error_paths]


def repair_findings(report: ValidationReport | None, paths: list[str]) -> list[ValidationFinding]:
    """Error findings that belong to the files sent for repair."""
    if report is None:
        return []
    return [finding for finding in report.errors() if _finding_path(finding) in paths]


def check_repair_scope(requested: list[str], returned: list[str]) -> None:
    """Verify the repair stage returned exactly the requested file set.

    Raises:
        RepairMismatchError: If any path is unrequested or missing.
    """
    if set(requested) != set(returned):
        raise RepairMismatchError(requested, returned)


def merge_repair(
    files: Mapping[str, str],
    requested: list[str],
    operations: list[ChangeOperation],
    max_change_ratio: float | None = DEFAULT_MAX_CHANGE_RATIO,
    min_lines_for_ratio: int = MIN_LINES_FOR_RATIO,
) -> tuple[MaterializedFiles, list[str]]:
    """Merge repaired files into the generated set, file by file.

    Unrequested paths and deletions are dropped; requested paths the repair
    omitted keep their prior content.

    Returns:
        Tuple of (merged MaterializedFiles, dropped paths).
    """
    wanted = set(requested)
    accepted: list[ChangeOperation] = []
    dropped: list[str] = []
    for operation in operations:
        if operation.path in wanted and not isinstance(operation, DeleteFile):
            accepted.append(operation)
        else:
            dropped.append(operation.path)

    merged = materialize_operations(files, accepted, max_change_ratio, min_lines_for_ratio)
    for path in dropped:
        merged.warnings.append(f"{path}: not requested for repair; dropped")
    return merged, dropped
