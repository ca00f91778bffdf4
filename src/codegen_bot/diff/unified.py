"""Parsing and formatting of unified diff text."""

import re

from codegen_bot.diff.exceptions import DiffStructureError
from codegen_bot.models import DiffHunk, FileDiff

HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
FILE_HEADER_PREFIXES = (
    "diff --git",
    "index ",
    "--- ",
    "+++ ",
    "new file mode",
    "deleted file mode",
    "similarity index",
    "rename from",
    "rename to",
)
NO_NEWLINE_MARKER = "\\"
DEV_NULL = "/dev/null"


def _header_path(raw: str) -> str | None:
    path = raw.strip().split("\t", 1)[0]
    if path == DEV_NULL:
        return None
    if path.startswith(("a/", "b/")):
        path = path[2:]
    return path or None


def format_unified_diff(
    path: str,
    hunks: list[DiffHunk],
    include_file_headers: bool = True,
) -> str:
    """Serialize hunks to unified diff text.

    Args:
        path: Relative file path used in the ``---``/``+++`` headers.
        hunks: Hunks in file order.
        include_file_headers: Emit ``--- a/path`` and ``+++ b/path`` lines.

    Returns:
        Unified diff text ending in a newline, or "" when there are no hunks.
    """
    if not hunks:
        return ""

    out: list[str] = []
    if include_file_headers and path:
        out.append(f"--- a/{path}")
        out.append(f"+++ b/{path}")
    for hunk in hunks:
        out.append(hunk.header)
        out.extend(hunk.lines)
    return "\n".join(out) + "\n"


def parse_unified_diff(text: str) -> tuple[str | None, list[DiffHunk]]:
    """Parse single-file unified diff text into hunks.

    Header counts are kept exactly as written so that inconsistent hunks
    can be detected later instead of being silently recounted. A hunk runs
    until the next ``@@`` header or the end of the text.

    Args:
        text: Unified diff text, with or without file headers.

    Returns:
        Tuple of (path from the ``+++``/``---`` header or None, hunks).

    Raises:
        DiffStructureError: If the text has no hunks, content before the
            first hunk that is not a file header, an unknown line prefix,
            or headers for more than one file.
    """
    body = text.rstrip("\n")
    path: str | None = None
    old_path: str | None = None
    hunks: list[DiffHunk] = []
    current: DiffHunk | None = None

    for number, line in enumerate(body.split("\n"), start=1):
        match = HUNK_HEADER_RE.match(line)
        if match:
            old_start, old_count, new_start, new_count = match.groups()
            current = DiffHunk(
                old_start=int(old_start),
                old_lines=int(old_count) if old_count is not None else 1,
                new_start=int(new_start),
                new_lines=int(new_count) if new_count is not None else 1,
            )
            hunks.append(current)
            continue

        if current is None:
            if line.startswith("+++ "):
                path = _header_path(line[4:])
            elif line.startswith("--- "):
                old_path = _header_path(line[4:])
            elif line.startswith(FILE_HEADER_PREFIXES) or not line.strip():
                continue
            else:
                raise DiffStructureError(
                    f"Line {number}: unexpected content before first hunk: {line[:80]!r}"
                )
            continue

        if line.startswith("diff --git"):
            raise DiffStructureError(
                f"Line {number}: unified diff covers more than one file"
            )
        if line.startswith(NO_NEWLINE_MARKER):
            continue
        if line == "":
            # Editors and models often strip the space from empty context lines
            current.lines.append(" ")
        elif line[0] in " +-":
            current.lines.append(line)
        else:
            raise DiffStructureError(
                f"Line {number}: invalid hunk line prefix {line[:1]!r}"
            )

    if not hunks:
        raise DiffStructureError("No hunks found in unified diff")

    return path or old_path, hunks


def diff_from_unified(path: str | None, text: str) -> FileDiff:
    """Build a FileDiff from unified text, keeping the text as the raw form."""
    header_path, hunks = parse_unified_diff(text)
    resolved = path or header_path
    if not resolved:
        raise DiffStructureError("Unified diff names no file path")
    return FileDiff(path=resolved, hunks=hunks, raw_unified_text=text)


def diff_from_hunks(path: str, hunks: list[DiffHunk]) -> FileDiff:
    """Build a FileDiff from structured hunks, serializing the raw form."""
    return FileDiff(
        path=path,
        hunks=list(hunks),
        raw_unified_text=format_unified_diff(path, hunks),
    )
