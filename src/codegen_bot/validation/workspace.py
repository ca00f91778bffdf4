"""Disposable workspace that materializes a candidate file set on disk."""

import contextlib
import fnmatch
import json
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator, Mapping
from pathlib import Path

from codegen_bot.validation.exceptions import WorkspaceError

logger = logging.getLogger(__name__)

# Config files copied from the real project so external checkers behave the same
SEED_CONFIG_FILES = (
    "package.json",
    "tsconfig.json",
    "next.config.ts",
    "next.config.js",
    "next.config.mjs",
    "tailwind.config.js",
    "tailwind.config.ts",
    "postcss.config.js",
    "postcss.config.mjs",
    "eslint.config.mjs",
    "eslint.config.js",
    ".eslintrc.json",
    ".eslintrc.js",
    "hardhat.config.js",
    "hardhat.config.ts",
)
DEFAULT_TSCONFIG = {
    "compilerOptions": {
        "target": "ES2017",
        "lib": ["dom", "dom.iterable", "esnext"],
        "allowJs": True,
        "skipLibCheck": True,
        "strict": False,
        "noEmit": True,
        "esModuleInterop": True,
        "module": "esnext",
        "moduleResolution": "bundler",
        "resolveJsonModule": True,
        "isolatedModules": True,
        "jsx": "preserve",
        "baseUrl": ".",
        "paths": {"@/*": ["./src/*"]},
    },
    "include": ["**/*.ts", "**/*.tsx"],
    "exclude": ["node_modules"],
}


def should_skip(path: str, patterns: list[str]) -> bool:
    """True if ``path`` matches any glob in the skip list."""
    normalized = path.replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return any(fnmatch.fnmatch(normalized, pattern) for pattern in patterns)


def filter_files(files: Mapping[str, str], patterns: list[str]) -> dict[str, str]:
    return {path: content for path, content in files.items() if not should_skip(path, patterns)}


def _write_files(root: Path, files: Mapping[str, str], project_root: Path | None) -> None:
    resolved_root = root.resolve()

    if project_root is not None and project_root.is_dir():
        for name in SEED_CONFIG_FILES:
            source = project_root / name
            if source.is_file() and name not in files:
                shutil.copy2(source, resolved_root / name)
        node_modules = project_root / "node_modules"
        if node_modules.is_dir():
            (resolved_root / "node_modules").symlink_to(node_modules.resolve(), target_is_directory=True)

    for relative_path, content in files.items():
        target = (resolved_root / relative_path).resolve()
        if not target.is_relative_to(resolved_root):
            raise WorkspaceError(
                f"Path traversal attempt detected: '{relative_path}' "
                f"resolves outside of the workspace."
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    tsconfig = resolved_root / "tsconfig.json"
    if not tsconfig.exists():
        tsconfig.write_text(json.dumps(DEFAULT_TSCONFIG, indent=2), encoding="utf-8")


@contextlib.asynccontextmanager
async def disposable_workspace(
    files: Mapping[str, str],
    project_root: str | Path | None = None,
) -> AsyncIterator[Path]:
    """Materialize files into a fresh temp directory and remove it on exit.

    Cleanup runs on every exit path, including exceptions and task
    cancellation.

    Args:
        files: Relative path -> content to write.
        project_root: Optional real project whose config files are copied
            and whose node_modules is symlinked in.

    Yields:
        Path of the workspace root.

    Raises:
        WorkspaceError: If a path escapes the workspace or writing fails.
    """
    workspace = Path(tempfile.mkdtemp(prefix="codegen-validate-"))
    try:
        try:
            _write_files(workspace, files, Path(project_root) if project_root else None)
        except (OSError, UnicodeError) as exc:
            raise WorkspaceError(f"Failed to materialize workspace: {exc}") from exc
        logger.debug("Materialized %d files into %s", len(files), workspace)
        yield workspace
    finally:
        shutil.rmtree(workspace, ignore_errors=True)
        logger.debug("Removed workspace %s", workspace)
