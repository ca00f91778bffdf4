"""Line-based diff computation, validation and application.

Text is split on "\\n" and re-joined with "\\n", so a trailing newline is an
empty final line. This keeps every compute/apply round trip byte-exact,
including for the empty string.
"""

import difflib
from collections.abc import Mapping

from codegen_bot.diff.exceptions import (
    DiffApplyError,
    DiffError,
    DiffStructureError,
    OversizedDiffError,
)
from codegen_bot.diff.unified import format_unified_diff
from codegen_bot.models import DiffCheckResult, DiffHunk, DiffStats, FileDiff
from codegen_bot.models.diff_models import ADD_PREFIX, CONTEXT_PREFIX, REMOVE_PREFIX

# Constants
DEFAULT_CONTEXT_LINES = 3
DEFAULT_MAX_CHANGE_RATIO = 0.9  # Above this share of changed lines a diff is a rewrite
MIN_LINES_FOR_RATIO = 20  # Smaller files are exempt from the rewrite check
VALID_PREFIXES = (CONTEXT_PREFIX, ADD_PREFIX, REMOVE_PREFIX)

_Opcode = tuple[str, int, int, int, int]


def split_lines(text: str) -> list[str]:
    return text.split("\n")


def join_lines(lines: list[str]) -> str:
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Computing diffs
# ---------------------------------------------------------------------------


def _group_changes(opcodes: list[_Opcode], context_lines: int) -> list[list[_Opcode]]:
    """Group change opcodes into hunks.

    A change joins the previous group only when the unchanged gap between
    them is shorter than twice the context size.
    """
    groups: list[list[_Opcode]] = []
    for opcode in opcodes:
        if opcode[0] == "equal":
            continue
        if groups and opcode[1] - groups[-1][-1][2] < 2 * context_lines:
            groups[-1].append(opcode)
        else:
            groups.append([opcode])
    return groups


def _build_hunk(
    group: list[_Opcode],
    old: list[str],
    new: list[str],
    context_lines: int,
) -> DiffHunk:
    first, last = group[0], group[-1]
    lead = min(context_lines, first[1])
    trail = min(context_lines, len(old) - last[2])
    old_begin, new_begin = first[1] - lead, first[3] - lead
    old_end, new_end = last[2] + trail, last[4] + trail

    lines = [CONTEXT_PREFIX + line for line in old[old_begin:first[1]]]
    previous_end: int | None = None
    for tag, i1, i2, j1, j2 in group:
        if previous_end is not None:
            lines.extend(CONTEXT_PREFIX + line for line in old[previous_end:i1])
        if tag in ("replace", "delete"):
            lines.extend(REMOVE_PREFIX + line for line in old[i1:i2])
        if tag in ("replace", "insert"):
            lines.extend(ADD_PREFIX + line for line in new[j1:j2])
        previous_end = i2
    lines.extend(CONTEXT_PREFIX + line for line in old[last[2]:old_end])

    old_count = old_end - old_begin
    new_count = new_end - new_begin
    # An empty side names the line after which the change sits (0 = top)
    return DiffHunk(
        old_start=old_begin + 1 if old_count else old_begin,
        old_lines=old_count,
        new_start=new_begin + 1 if new_count else new_begin,
        new_lines=new_count,
        lines=lines,
    )


def compute_diff(
    original: str,
    updated: str,
    path: str = "",
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> FileDiff:
    """Compute a minimal line-based diff between two versions of a file.

    Args:
        original: Content before the change.
        updated: Content after the change.
        path: Relative file path recorded on the diff.
        context_lines: Unchanged lines kept around each change run.

    Returns:
        FileDiff with hunks and canonical unified text. Identical inputs
        produce a FileDiff with no hunks and empty text.

    Raises:
        ValueError: If context_lines is negative.
    """
    if context_lines < 0:
        raise ValueError(f"context_lines must be >= 0, got {context_lines}")

    old = split_lines(original)
    new = split_lines(updated)
    if old == new:
        return FileDiff(path=path, hunks=[], raw_unified_text="")

    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    groups = _group_changes(matcher.get_opcodes(), context_lines)
    hunks = [_build_hunk(group, old, new, context_lines) for group in groups]

    return FileDiff(
        path=path,
        hunks=hunks,
        raw_unified_text=format_unified_diff(path, hunks),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _insert_index(hunk: DiffHunk) -> int:
    """Zero-based index of the first old line the hunk covers."""
    return hunk.old_start if hunk.old_lines == 0 else hunk.old_start - 1


def _field_problems(hunks: list[DiffHunk]) -> list[str]:
    problems: list[str] = []
    for number, hunk in enumerate(hunks, start=1):
        if hunk.old_lines < 0 or hunk.new_lines < 0:
            problems.append(f"hunk {number}: negative line count")
        if hunk.old_start < (0 if hunk.old_lines == 0 else 1):
            problems.append(f"hunk {number}: invalid old start {hunk.old_start}")
        if hunk.new_start < (0 if hunk.new_lines == 0 else 1):
            problems.append(f"hunk {number}: invalid new start {hunk.new_start}")
        if not hunk.lines:
            problems.append(f"hunk {number}: no lines")
        for line in hunk.lines:
            if line[:1] not in VALID_PREFIXES:
                problems.append(f"hunk {number}: invalid line prefix in {line[:40]!r}")
                break
    return problems


def _count_problems(hunks: list[DiffHunk]) -> list[str]:
    problems: list[str] = []
    for number, hunk in enumerate(hunks, start=1):
        counted_old = hunk.counted_old_lines()
        counted_new = hunk.counted_new_lines()
        if counted_old != hunk.old_lines:
            problems.append(
                f"hunk {number}: header says {hunk.old_lines} old lines "
                f"but {counted_old} context/removed lines present"
            )
        if counted_new != hunk.new_lines:
            problems.append(
                f"hunk {number}: header says {hunk.new_lines} new lines "
                f"but {counted_new} context/added lines present"
            )

    ordered = sorted(hunks, key=lambda h: (_insert_index(h), h.old_lines))
    for previous, current in zip(ordered, ordered[1:]):
        if _insert_index(current) < _insert_index(previous) + previous.old_lines:
            problems.append(
                f"hunks {previous.header} and {current.header} overlap"
            )
    return problems


def _content_problems(lines: list[str], hunks: list[DiffHunk]) -> list[str]:
    problems: list[str] = []
    for number, hunk in enumerate(hunks, start=1):
        start = _insert_index(hunk)
        end = start + hunk.old_lines
        if end > len(lines):
            problems.append(
                f"hunk {number} ({hunk.header}): range ends at line {end} "
                f"but file has {len(lines)} lines"
            )
            continue
        expected = hunk.old_text_lines()
        actual = lines[start:end]
        for offset, (want, got) in enumerate(zip(expected, actual)):
            if want != got:
                problems.append(
                    f"hunk {number} ({hunk.header}): line {start + offset + 1} "
                    f"expected {want[:60]!r} but found {got[:60]!r}"
                )
                break
    return problems


def validate_diff_structure(diff: FileDiff) -> bool:
    """Structural sanity check that never looks at file content."""
    if not diff.hunks:
        return False
    return not (_field_problems(diff.hunks) or _count_problems(diff.hunks))


def validate_diff_against_file(
    path: str,
    content: str,
    hunks: list[DiffHunk],
) -> DiffCheckResult:
    """Check hunks against the file they target without raising.

    Args:
        path: Relative path, used to label error messages.
        content: Current file content.
        hunks: Hunks to check.

    Returns:
        DiffCheckResult listing every structural and content problem found.
    """
    errors = _field_problems(hunks) + _count_problems(hunks)
    if not _field_problems(hunks):
        consistent = [
            hunk for hunk in hunks
            if hunk.counted_old_lines() == hunk.old_lines
        ]
        errors.extend(_content_problems(split_lines(content), consistent))
    return DiffCheckResult(
        is_valid=not errors,
        errors=[f"{path}: {error}" if path else error for error in errors],
    )


def check_diff_size(
    diff: FileDiff,
    line_count: int,
    max_change_ratio: float = DEFAULT_MAX_CHANGE_RATIO,
    min_lines_for_ratio: int = MIN_LINES_FOR_RATIO,
) -> None:
    """Reject diffs that amount to a full rewrite of the file.

    Raises:
        OversizedDiffError: If the original lines the diff removes or
            replaces exceed max_change_ratio * line_count on a file with at
            least min_lines_for_ratio lines. Pure additions never count.
    """
    if line_count < min_lines_for_ratio:
        return
    replaced = diff_stats(diff).deletions
    if replaced > max_change_ratio * line_count:
        raise OversizedDiffError(
            f"{diff.path or '<diff>'}: {replaced} of {line_count} lines replaced, "
            f"more than {max_change_ratio:.0%}; use full content instead"
        )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def apply_diff(
    original: str,
    diff: FileDiff,
    max_change_ratio: float | None = None,
    min_lines_for_ratio: int = MIN_LINES_FOR_RATIO,
) -> str:
    """Apply a diff to content, all hunks or none.

    Hunks are applied bottom-up by the first old line they touch, so earlier
    edits do not shift the offsets of later ones and the result does not
    depend on the order the hunks were listed in.

    Args:
        original: Content the diff was made against.
        diff: Diff to apply.
        max_change_ratio: When set, reject diffs that rewrite more than this
            share of the file (see check_diff_size).
        min_lines_for_ratio: Files shorter than this skip the rewrite check.

    Returns:
        The patched content.

    Raises:
        DiffStructureError: If a hunk has malformed fields.
        DiffApplyError: If hunk counts are inconsistent, hunks overlap, or
            context does not match the content at the stated offset.
        OversizedDiffError: If the diff is a suspected full rewrite.
    """
    label = diff.path or "<diff>"
    field_problems = _field_problems(diff.hunks)
    if field_problems:
        raise DiffStructureError(f"{label}: {field_problems[0]}")

    count_problems = _count_problems(diff.hunks)
    if count_problems:
        raise DiffApplyError(f"{label}: {count_problems[0]}")

    lines = split_lines(original)
    if max_change_ratio is not None:
        check_diff_size(diff, len(lines), max_change_ratio, min_lines_for_ratio)

    content_problems = _content_problems(lines, diff.hunks)
    if content_problems:
        raise DiffApplyError(f"{label}: {content_problems[0]}")

    patched = list(lines)
    # On a shared start index the replacement runs first so the insertion lands before it
    ordered = sorted(diff.hunks, key=lambda h: (_insert_index(h), h.old_lines), reverse=True)
    for hunk in ordered:
        start = _insert_index(hunk)
        patched[start:start + hunk.old_lines] = hunk.new_text_lines()
    return join_lines(patched)


def apply_file_diffs(
    files: Mapping[str, str],
    diffs: list[FileDiff],
    max_change_ratio: float | None = None,
) -> tuple[dict[str, str], dict[str, str]]:
    """Apply a diff set to a file mapping, collecting per-file failures.

    A file whose diff fails keeps its prior content.

    Returns:
        Tuple of (patched mapping, {path: error message} for failed files).
    """
    result = dict(files)
    failures: dict[str, str] = {}
    for diff in diffs:
        if diff.path not in result:
            failures[diff.path] = f"{diff.path}: file not found"
            continue
        try:
            result[diff.path] = apply_diff(
                result[diff.path], diff, max_change_ratio=max_change_ratio
            )
        except DiffError as exc:
            failures[diff.path] = str(exc)
    return result, failures


# ---------------------------------------------------------------------------
# Statistics and reversal
# ---------------------------------------------------------------------------


def diff_stats(diff: FileDiff) -> DiffStats:
    additions = deletions = 0
    for hunk in diff.hunks:
        for line in hunk.lines:
            if line.startswith(ADD_PREFIX):
                additions += 1
            elif line.startswith(REMOVE_PREFIX):
                deletions += 1
    return DiffStats(
        additions=additions,
        deletions=deletions,
        hunks=len(diff.hunks),
        files=1 if diff.hunks else 0,
    )


def summarize_diffs(diffs: list[FileDiff]) -> DiffStats:
    total = DiffStats()
    for diff in diffs:
        stats = diff_stats(diff)
        total.additions += stats.additions
        total.deletions += stats.deletions
        total.hunks += stats.hunks
        total.files += stats.files
    return total


def reverse_diff(diff: FileDiff) -> FileDiff:
    """Invert a diff so that applying it to the patched content restores the original."""
    swap = {ADD_PREFIX: REMOVE_PREFIX, REMOVE_PREFIX: ADD_PREFIX}
    hunks = [
        DiffHunk(
            old_start=hunk.new_start,
            old_lines=hunk.new_lines,
            new_start=hunk.old_start,
            new_lines=hunk.old_lines,
            lines=[swap.get(line[:1], line[:1]) + line[1:] for line in hunk.lines],
        )
        for hunk in diff.hunks
    ]
    return FileDiff(
        path=diff.path,
        hunks=hunks,
        raw_unified_text=format_unified_diff(diff.path, hunks),
    )
