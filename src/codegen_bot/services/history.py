"""Patch history: stores the diff sets produced by each pipeline run."""

import asyncio
import json
import logging
from collections import defaultdict
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter

from codegen_bot.diff import apply_diff, reverse_diff
from codegen_bot.models import FileDiff
from codegen_bot.services.exceptions import ServiceError

logger = logging.getLogger(__name__)

_DIFF_LIST = TypeAdapter(list[FileDiff])


class PatchHistory(Protocol):
    """Key-value store of patch sets per project."""

    async def store(self, project_id: str, diffs: list[FileDiff]) -> None: ...

    async def load(self, project_id: str) -> list[FileDiff]: ...


class InMemoryPatchHistory:
    def __init__(self) -> None:
        self._sets: dict[str, list[list[FileDiff]]] = defaultdict(list)

    async def store(self, project_id: str, diffs: list[FileDiff]) -> None:
        self._sets[project_id].append(list(diffs))

    async def load(self, project_id: str) -> list[FileDiff]:
        """Return every stored diff for the project, oldest patch set first."""
        return [diff for patch_set in self._sets.get(project_id, []) for diff in patch_set]

    def patch_sets(self, project_id: str) -> list[list[FileDiff]]:
        return [list(patch_set) for patch_set in self._sets.get(project_id, [])]


class JsonlPatchHistory:
    """Appends one JSON line per patch set to ``<root>/<project_id>.jsonl``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, project_id: str) -> Path:
        target = (self.root / f"{project_id}.jsonl").resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise ServiceError(f"Invalid project id: '{project_id}'")
        return target

    def _append(self, project_id: str, diffs: list[FileDiff]) -> None:
        path = self._path(project_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(_DIFF_LIST.dump_python(diffs, mode="json"))
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    def _read(self, project_id: str) -> list[FileDiff]:
        path = self._path(project_id)
        if not path.exists():
            return []
        diffs: list[FileDiff] = []
        with path.open(encoding="utf-8") as handle:
            for number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    diffs.extend(_DIFF_LIST.validate_json(line))
                except ValueError as exc:
                    raise ServiceError(f"{path}:{number}: corrupt patch set: {exc}") from exc
        return diffs

    async def store(self, project_id: str, diffs: list[FileDiff]) -> None:
        await asyncio.to_thread(self._append, project_id, diffs)
        logger.debug("Stored %d diffs for project %s", len(diffs), project_id)

    async def load(self, project_id: str) -> list[FileDiff]:
        return await asyncio.to_thread(self._read, project_id)


def rollback_files(files: Mapping[str, str], diffs: list[FileDiff]) -> dict[str, str]:
    """Undo a diff set, newest diff first.

    A path absent from ``files`` is treated as empty, which restores files
    the diff set deleted. A path whose content rolls back to "" is removed,
    which undoes creations.

    Raises:
        DiffApplyError: If the files no longer match the diffs being undone.
    """
    result = dict(files)
    for diff in reversed(diffs):
        restored = apply_diff(result.get(diff.path, ""), reverse_diff(diff))
        if restored:
            result[diff.path] = restored
        else:
            result.pop(diff.path, None)
    return result
