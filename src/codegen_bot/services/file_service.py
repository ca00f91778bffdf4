"""Serves project files to the presentation layer from a directory tree."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from codegen_bot.services.exceptions import ProjectFileNotFoundError, ServiceError
from codegen_bot.validation.workspace import should_skip

logger = logging.getLogger(__name__)


class ProjectFileService:
    """Stores each project under ``<root>/<project_id>/``.

    Paths are relative with forward slashes. Files matching ``skip_patterns``
    are hidden from listings.
    """

    def __init__(self, root: str | Path, skip_patterns: list[str] | None = None) -> None:
        self.root = Path(root)
        self.skip_patterns = list(skip_patterns or [])

    def _project_dir(self, project_id: str) -> Path:
        root = self.root.resolve()
        project_dir = (root / project_id).resolve()
        if project_dir == root or not project_dir.is_relative_to(root):
            raise ServiceError(f"Invalid project id: '{project_id}'")
        return project_dir

    def _file_path(self, project_id: str, path: str) -> Path:
        project_dir = self._project_dir(project_id)
        target = (project_dir / path).resolve()
        if not target.is_relative_to(project_dir):
            raise ServiceError(
                f"Path traversal attempt detected: '{path}' resolves outside of the project."
            )
        return target

    def list_files(self, project_id: str) -> list[str]:
        project_dir = self._project_dir(project_id)
        if not project_dir.is_dir():
            raise ProjectFileNotFoundError(f"Unknown project: '{project_id}'")
        paths: list[str] = []
        for dirpath, _, filenames in os.walk(project_dir):
            for name in filenames:
                relative = (Path(dirpath) / name).relative_to(project_dir).as_posix()
                if not should_skip(relative, self.skip_patterns):
                    paths.append(relative)
        return sorted(paths)

    def read_file(self, project_id: str, path: str) -> str:
        target = self._file_path(project_id, path)
        if not target.is_file():
            raise ProjectFileNotFoundError(f"{project_id}: no such file '{path}'")
        return target.read_text(encoding="utf-8")

    def load_project(self, project_id: str) -> dict[str, str]:
        return {path: self.read_file(project_id, path) for path in self.list_files(project_id)}

    def publish(
        self,
        project_id: str,
        files: Mapping[str, str],
        deleted_files: list[str] | None = None,
    ) -> None:
        """Write a generated file set into the project and remove deleted paths."""
        targets = {path: self._file_path(project_id, path) for path in files}
        for path, target in targets.items():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(files[path], encoding="utf-8")
        for path in deleted_files or []:
            self._file_path(project_id, path).unlink(missing_ok=True)
        logger.info(
            "Published %d files to project %s (%d deleted)",
            len(files), project_id, len(deleted_files or []),
        )
