"""Tests for the disposable validation workspace."""

import asyncio
import json

import pytest

from codegen_bot.validation import WorkspaceError, disposable_workspace, filter_files, should_skip
from codegen_bot.config import DEFAULT_SKIP_PATTERNS


class TestSkipPatterns:
    @pytest.mark.parametrize("path", [
        "node_modules/react/index.js",
        "packages/web/node_modules/x/index.js",
        ".next/server/app.js",
        "public/vendor.min.js",
        "package-lock.json",
        "./dist/bundle.js",
    ])
    def test_skipped(self, path):
        assert should_skip(path, DEFAULT_SKIP_PATTERNS) is True

    @pytest.mark.parametrize("path", ["src/app.ts", "package.json", "contracts/Token.sol"])
    def test_kept(self, path):
        assert should_skip(path, DEFAULT_SKIP_PATTERNS) is False

    def test_filter_files(self):
        files = {"src/app.ts": "a", "node_modules/x/index.js": "b"}
        assert filter_files(files, DEFAULT_SKIP_PATTERNS) == {"src/app.ts": "a"}


class TestDisposableWorkspace:
    @pytest.mark.asyncio
    async def test_files_written_and_removed(self):
        async with disposable_workspace({"src/app.ts": "export {};\n"}) as workspace:
            assert (workspace / "src" / "app.ts").read_text() == "export {};\n"
            assert workspace.is_dir()
        assert not workspace.exists()

    @pytest.mark.asyncio
    async def test_default_tsconfig_written(self):
        async with disposable_workspace({"src/app.ts": ""}) as workspace:
            tsconfig = json.loads((workspace / "tsconfig.json").read_text())
        assert tsconfig["compilerOptions"]["paths"] == {"@/*": ["./src/*"]}

    @pytest.mark.asyncio
    async def test_candidate_tsconfig_wins(self):
        async with disposable_workspace({"tsconfig.json": '{"compilerOptions": {}}'}) as workspace:
            assert (workspace / "tsconfig.json").read_text() == '{"compilerOptions": {}}'

    @pytest.mark.asyncio
    async def test_project_config_seeded(self, project_tree):
        (project_tree / "node_modules").mkdir()
        async with disposable_workspace({"src/app.ts": ""}, project_tree) as workspace:
            assert (workspace / "package.json").read_text() == '{"name": "demo"}\n'
            assert (workspace / "node_modules").is_symlink()
        assert (project_tree / "node_modules").is_dir()

    @pytest.mark.asyncio
    async def test_path_traversal_rejected_and_cleaned(self, tmp_path):
        captured = []
        with pytest.raises(WorkspaceError, match="Path traversal"):
            async with disposable_workspace({"../escape.ts": "x"}) as workspace:
                captured.append(workspace)
        assert captured == []
        assert not (tmp_path / "escape.ts").exists()

    @pytest.mark.asyncio
    async def test_removed_on_exception(self):
        captured = []
        with pytest.raises(RuntimeError):
            async with disposable_workspace({"src/app.ts": ""}) as workspace:
                captured.append(workspace)
                raise RuntimeError("check exploded")
        assert not captured[0].exists()

    @pytest.mark.asyncio
    async def test_removed_on_cancellation(self):
        captured = []
        entered = asyncio.Event()

        async def hold_workspace():
            async with disposable_workspace({"src/app.ts": ""}) as workspace:
                captured.append(workspace)
                entered.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(hold_workspace())
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not captured[0].exists()
