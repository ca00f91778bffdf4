"""Tests for the individual validation checks with external tools stubbed out."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from codegen_bot.agents import AgentError
from codegen_bot.models import FindingSeverity, StageKind
from codegen_bot.parsing import StageParseError
from codegen_bot.validation import (
    BuildCheck,
    CommandOutput,
    ESLintCheck,
    ModelReviewCheck,
    SolidityCheck,
    TypeScriptCheck,
    ValidationCheckError,
    run_command,
)
from codegen_bot.validation import checks as checks_module
from helpers import make_finding


@pytest.fixture
def fake_command(monkeypatch):
    """Replace the subprocess runner; tests set ``.return_value``."""
    mock = AsyncMock(return_value=CommandOutput(exit_code=0, stdout="", stderr=""))
    monkeypatch.setattr(checks_module, "run_command", mock)
    return mock


class TestApplicability:
    def test_typescript_needs_ts_files(self):
        assert TypeScriptCheck().applies_to({"src/a.tsx": ""})
        assert not TypeScriptCheck().applies_to({"src/a.js": ""})

    def test_solidity_needs_sol_files(self):
        assert SolidityCheck().applies_to({"contracts/Token.sol": ""})
        assert not SolidityCheck().applies_to({"src/a.ts": ""})

    def test_eslint_needs_scripts(self):
        assert ESLintCheck().applies_to({"src/a.mjs": ""})
        assert not ESLintCheck().applies_to({"README.md": ""})


class TestCommandChecks:
    @pytest.mark.asyncio
    async def test_typescript_findings(self, fake_command, tmp_path):
        fake_command.return_value = CommandOutput(
            exit_code=2,
            stdout="src/a.ts(1,7): error TS2322: Type 'string' is not assignable to type 'number'.\n",
            stderr="",
        )

        findings = await TypeScriptCheck().run(tmp_path, {"src/a.ts": ""})

        assert findings[0].code == "TS2322"
        command = fake_command.call_args.args[1]
        assert command[:3] == ["npx", "--no-install", "tsc"]
        assert "--noEmit" in command

    @pytest.mark.asyncio
    async def test_nonzero_exit_without_findings_is_check_failure(self, fake_command, tmp_path):
        fake_command.return_value = CommandOutput(exit_code=1, stdout="", stderr="npx: command not found")

        with pytest.raises(ValidationCheckError, match="npx: command not found") as exc_info:
            await TypeScriptCheck().run(tmp_path, {"src/a.ts": ""})

        assert exc_info.value.check_name == "typescript"

    @pytest.mark.asyncio
    async def test_eslint_targets_src_when_present(self, fake_command, tmp_path):
        (tmp_path / "src").mkdir()
        fake_command.return_value = CommandOutput(
            exit_code=1,
            stdout=json.dumps([{
                "filePath": str(tmp_path / "src" / "a.ts"),
                "messages": [{"ruleId": "no-undef", "severity": 2, "message": "'x' is not defined.", "line": 2, "column": 3}],
            }]),
            stderr="",
        )

        findings = await ESLintCheck().run(tmp_path, {"src/a.ts": ""})

        assert fake_command.call_args.args[1] == ["npx", "--no-install", "eslint", "src", "--format", "json"]
        assert findings[0].file == "src/a.ts"
        assert findings[0].severity == FindingSeverity.ERROR

    @pytest.mark.asyncio
    async def test_eslint_garbage_output_is_check_failure(self, fake_command, tmp_path):
        fake_command.return_value = CommandOutput(exit_code=2, stdout="Oops! Something went wrong!", stderr="")

        with pytest.raises(ValidationCheckError, match="not JSON"):
            await ESLintCheck().run(tmp_path, {"a.js": ""})

    @pytest.mark.asyncio
    async def test_build_skipped_without_package_json(self, fake_command, tmp_path):
        assert await BuildCheck().run(tmp_path, {"src/a.ts": ""}) == []
        fake_command.assert_not_called()

    @pytest.mark.asyncio
    async def test_build_runs_with_package_json(self, fake_command, tmp_path):
        (tmp_path / "package.json").write_text("{}")
        fake_command.return_value = CommandOutput(
            exit_code=1, stdout="", stderr="./src/a.ts:3:1\nType error: Cannot find name 'x'.\n"
        )

        findings = await BuildCheck().run(tmp_path, {"src/a.ts": ""})

        assert [(f.file, f.line) for f in findings] == [("src/a.ts", 3)]


@pytest.mark.asyncio
async def test_run_command_missing_executable(tmp_path):
    with pytest.raises(ValidationCheckError, match="failed to start"):
        await run_command("typescript", ["definitely-not-a-real-binary-xyz"], tmp_path)


@pytest.mark.asyncio
async def test_run_command_captures_output(tmp_path):
    (tmp_path / "a.txt").write_text("hello\n")
    output = await run_command("cat", ["cat", "a.txt"], tmp_path)
    assert output.exit_code == 0
    assert output.stdout == "hello\n"


@pytest.mark.asyncio
async def test_run_command_cancellation_kills_and_reaps(tmp_path, monkeypatch):
    started = []
    real_exec = asyncio.create_subprocess_exec

    async def recording_exec(*args, **kwargs):
        process = await real_exec(*args, **kwargs)
        started.append(process)
        return process

    monkeypatch.setattr(checks_module.asyncio, "create_subprocess_exec", recording_exec)
    task = asyncio.create_task(run_command("sleep", ["sleep", "10"], tmp_path))
    while not started:
        await asyncio.sleep(0.01)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert started[0].returncode is not None


class TestModelReviewCheck:
    @pytest.mark.asyncio
    async def test_findings_passed_through(self, tmp_path):
        reviewer = AsyncMock(return_value=[make_finding("src/a.ts", FindingSeverity.WARNING)])

        findings = await ModelReviewCheck(reviewer).run(tmp_path, {"src/a.ts": ""})

        assert findings[0].severity == FindingSeverity.WARNING
        reviewer.assert_awaited_once_with({"src/a.ts": ""})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        StageParseError(StageKind.REVIEW, "not JSON"),
        AgentError("model call failed"),
    ])
    async def test_review_failure_becomes_check_failure(self, tmp_path, error):
        reviewer = AsyncMock(side_effect=error)

        with pytest.raises(ValidationCheckError) as exc_info:
            await ModelReviewCheck(reviewer).run(tmp_path, {"src/a.ts": ""})

        assert exc_info.value.check_name == "model_review"
