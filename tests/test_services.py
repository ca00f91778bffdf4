"""Tests for patch history and project file serving."""

import pytest

from codegen_bot.diff import DiffApplyError, compute_diff
from codegen_bot.services import (
    InMemoryPatchHistory,
    JsonlPatchHistory,
    ProjectFileNotFoundError,
    ProjectFileService,
    ServiceError,
    rollback_files,
)


def sample_diffs():
    return [
        compute_diff("a\nb\n", "a\nB\n", path="src/a.ts"),
        compute_diff("", "new\n", path="src/new.ts"),
    ]


# ---------------------------------------------------------------------------
# Patch history
# ---------------------------------------------------------------------------

class TestInMemoryPatchHistory:
    @pytest.mark.asyncio
    async def test_store_and_load(self):
        history = InMemoryPatchHistory()
        first, second = sample_diffs()

        await history.store("demo", [first])
        await history.store("demo", [second])

        assert await history.load("demo") == [first, second]
        assert history.patch_sets("demo") == [[first], [second]]

    @pytest.mark.asyncio
    async def test_unknown_project_is_empty(self):
        assert await InMemoryPatchHistory().load("nope") == []


class TestJsonlPatchHistory:
    @pytest.mark.asyncio
    async def test_round_trip_through_disk(self, tmp_path):
        history = JsonlPatchHistory(tmp_path)
        diffs = sample_diffs()

        await history.store("demo", diffs)
        await history.store("demo", diffs[:1])

        assert await history.load("demo") == diffs + diffs[:1]
        assert len((tmp_path / "demo.jsonl").read_text().splitlines()) == 2

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        assert await JsonlPatchHistory(tmp_path).load("demo") == []

    @pytest.mark.asyncio
    async def test_corrupt_line_raises(self, tmp_path):
        (tmp_path / "demo.jsonl").write_text("not json\n")
        with pytest.raises(ServiceError, match="corrupt patch set"):
            await JsonlPatchHistory(tmp_path).load("demo")

    @pytest.mark.asyncio
    async def test_project_id_cannot_escape_root(self, tmp_path):
        with pytest.raises(ServiceError, match="Invalid project id"):
            await JsonlPatchHistory(tmp_path / "history").store("../outside", sample_diffs())


class TestRollback:
    def test_undoes_modification_and_creation(self):
        original = {"src/a.ts": "a\nb\n"}
        patched = {"src/a.ts": "a\nB\n", "src/new.ts": "new\n"}

        assert rollback_files(patched, sample_diffs()) == original

    def test_restores_deleted_file(self):
        diff = compute_diff("gone\n", "", path="src/gone.ts")
        assert rollback_files({}, [diff]) == {"src/gone.ts": "gone\n"}

    def test_mismatched_files_raise(self):
        with pytest.raises(DiffApplyError):
            rollback_files({"src/a.ts": "edited by hand\n"}, sample_diffs()[:1])


# ---------------------------------------------------------------------------
# File service
# ---------------------------------------------------------------------------

@pytest.fixture
def service(project_tree):
    return ProjectFileService(project_tree.parent, skip_patterns=["node_modules/**"])


class TestProjectFileService:
    def test_list_files(self, service, project_tree):
        (project_tree / "node_modules" / "x").mkdir(parents=True)
        (project_tree / "node_modules" / "x" / "index.js").write_text("")
        assert service.list_files("project") == [
            "package.json",
            "src/app.ts",
            "src/components/Banner.tsx",
        ]

    def test_unknown_project(self, service):
        with pytest.raises(ProjectFileNotFoundError):
            service.list_files("other")

    def test_read_file(self, service):
        assert service.read_file("project", "package.json") == '{"name": "demo"}\n'

    def test_read_missing_file(self, service):
        with pytest.raises(ProjectFileNotFoundError, match="no such file"):
            service.read_file("project", "src/missing.ts")

    @pytest.mark.parametrize("path", ["../project/package.json/../../secret", "../../etc/passwd"])
    def test_read_traversal_rejected(self, service, path):
        with pytest.raises(ServiceError, match="Path traversal"):
            service.read_file("project", path)

    def test_invalid_project_id(self, service):
        with pytest.raises(ServiceError, match="Invalid project id"):
            service.list_files("..")

    def test_load_project(self, service):
        files = service.load_project("project")
        assert files["src/app.ts"].startswith("import { Banner }")

    def test_publish(self, service, project_tree):
        service.publish(
            "project",
            {"src/app.ts": "export const title = 'New';\n", "src/lib/util.ts": "export {};\n"},
            deleted_files=["src/components/Banner.tsx"],
        )
        assert (project_tree / "src" / "app.ts").read_text() == "export const title = 'New';\n"
        assert (project_tree / "src" / "lib" / "util.ts").exists()
        assert not (project_tree / "src" / "components" / "Banner.tsx").exists()

    def test_publish_rejects_traversal_before_writing(self, service, project_tree):
        with pytest.raises(ServiceError):
            service.publish("project", {"src/app.ts": "changed", "../escape.ts": "x"})
        assert (project_tree / "src" / "app.ts").read_text().startswith("import")
