"""Tests for allow-listed, read-only tool execution."""

import pytest

from codegen_bot.tools import ToolCallExecutor, ToolNotAllowedError, format_tool_results
from codegen_bot.models import ToolExecutionResult


@pytest.fixture
def executor(project_tree):
    return ToolCallExecutor(project_tree, timeout_seconds=5.0)


# ---------------------------------------------------------------------------
# Command validation
# ---------------------------------------------------------------------------

class TestValidateCommand:
    def test_allowed_command_resolves_working_directory(self, executor, project_tree):
        cwd = executor.validate_command("ls", ["-la"], "src")
        assert cwd == (project_tree / "src").resolve()

    @pytest.mark.parametrize("tool", ["rm", "bash", "python", "npm", "curl"])
    def test_tool_not_on_allow_list(self, executor, tool):
        with pytest.raises(ToolNotAllowedError, match="not allowed"):
            executor.validate_command(tool, [])

    @pytest.mark.parametrize("arg", [
        "foo; rm -rf /",
        "$(whoami)",
        "a | b",
        "> out.txt",
        "../secrets",
        "/etc/passwd",
        "-delete",
    ])
    def test_dangerous_arguments(self, executor, arg):
        with pytest.raises(ToolNotAllowedError):
            executor.validate_command("find", [".", arg])

    def test_too_many_arguments(self, executor):
        with pytest.raises(ToolNotAllowedError, match="Too many arguments"):
            executor.validate_command("ls", ["-l"] * 11)

    def test_working_directory_outside_root(self, executor, tmp_path):
        with pytest.raises(ToolNotAllowedError, match="outside the project root"):
            executor.validate_command("ls", [], str(tmp_path))

    def test_missing_working_directory(self, executor):
        with pytest.raises(ToolNotAllowedError, match="does not exist"):
            executor.validate_command("ls", [], "nope")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class TestExecute:
    @pytest.mark.asyncio
    async def test_grep_finds_usage(self, executor):
        result = await executor.execute("grep", ["-rn", "Banner", "src"])
        assert result.success is True
        assert "src/app.ts" in result.output
        assert result.error is None
        assert result.elapsed_ms >= 0

    @pytest.mark.asyncio
    async def test_grep_without_match_is_success(self, executor):
        result = await executor.execute("grep", ["-rn", "NoSuchSymbol", "src"])
        assert result.success is True
        assert result.output == ""

    @pytest.mark.asyncio
    async def test_working_directory_is_respected(self, executor):
        result = await executor.execute("ls", [], "src/components")
        assert result.output.split() == ["Banner.tsx"]

    @pytest.mark.asyncio
    async def test_rejected_command_returns_failure(self, executor):
        result = await executor.execute("rm", ["-rf", "src"])
        assert result.success is False
        assert "not allowed" in result.error

    @pytest.mark.asyncio
    async def test_rejected_command_does_not_touch_files(self, executor, project_tree):
        await executor.execute("find", [".", "-delete"])
        assert (project_tree / "src" / "app.ts").exists()

    @pytest.mark.asyncio
    async def test_nonzero_exit_reports_stderr(self, executor):
        result = await executor.execute("cat", ["missing.ts"])
        assert result.success is False
        assert "missing.ts" in result.error

    @pytest.mark.asyncio
    async def test_output_is_capped(self, project_tree):
        executor = ToolCallExecutor(project_tree, max_output_chars=10)
        result = await executor.execute("cat", ["src/app.ts"])
        assert result.success is True
        assert result.output.startswith("import { B")
        assert result.output.endswith("[output truncated]")

    @pytest.mark.asyncio
    async def test_timeout_kills_command(self, project_tree):
        executor = ToolCallExecutor(project_tree, timeout_seconds=0.2)
        result = await executor.execute("tail", ["-f", "package.json"])
        assert result.success is False
        assert "timed out" in result.error


def test_format_tool_results():
    text = format_tool_results([
        ("ls", ["src"], ToolExecutionResult(success=True, output="app.ts\n")),
        ("cat", ["x.ts"], ToolExecutionResult(success=False, error="No such file")),
    ])
    assert text == "## ls src\napp.ts\n\n## cat x.ts (FAILED)\nNo such file"
