"""Models for project files and the generated file set."""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

# Final pipeline artifact: path -> content, insertion-ordered
GeneratedFileSet = dict[str, str]


class FileSnapshot(BaseModel):
    """One file at one point in time."""

    model_config = ConfigDict(frozen=True)

    path: str  # Relative path from project root, forward slashes
    content: str


def snapshot_mapping(
    files: Mapping[str, str] | Iterable[FileSnapshot],
) -> dict[str, FileSnapshot]:
    """Build an insertion-ordered path -> FileSnapshot mapping.

    Args:
        files: Either a path -> content mapping or an iterable of snapshots.

    Returns:
        Dict keyed by path, preserving input order.

    Raises:
        ValueError: If the same path appears twice in an iterable of snapshots.
    """
    if isinstance(files, Mapping):
        return {
            path: FileSnapshot(path=path, content=content)
            for path, content in files.items()
        }

    snapshots: dict[str, FileSnapshot] = {}
    for snapshot in files:
        if snapshot.path in snapshots:
            raise ValueError(f"Duplicate file path in snapshot: {snapshot.path}")
        snapshots[snapshot.path] = snapshot
    return snapshots


def contents_of(snapshots: Mapping[str, FileSnapshot]) -> GeneratedFileSet:
    return {path: snapshot.content for path, snapshot in snapshots.items()}
