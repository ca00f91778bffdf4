"""Validation checks run by the ValidationEngine."""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from codegen_bot.agents.exceptions import AgentError
from codegen_bot.config import ValidationConfig
from codegen_bot.models import FindingCategory, ValidationFinding
from codegen_bot.parsing import ResponseParseError
from codegen_bot.validation.exceptions import ValidationCheckError
from codegen_bot.validation.heuristics import check_references, scan_source
from codegen_bot.validation.output_parsers import (
    parse_build_output,
    parse_eslint_json,
    parse_solidity_output,
    parse_tsc_output,
)

logger = logging.getLogger(__name__)

# --no-install keeps npx from downloading missing tools mid-validation
NPX = ("npx", "--no-install")
TYPESCRIPT_SUFFIXES = (".ts", ".tsx")
SCRIPT_SUFFIXES = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
MAX_STDERR_IN_ERROR = 300

Reviewer = Callable[[Mapping[str, str]], Awaitable[list[ValidationFinding]]]


@dataclass
class CommandOutput:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def combined(self) -> str:
        return f"{self.stderr}\n{self.stdout}"


async def run_command(check_name: str, command: list[str], cwd: Path) -> CommandOutput:
    """Run an external checker without a shell.

    The process is killed if the awaiting task is cancelled, which is how
    the engine's per-check timeout reaches it.

    Raises:
        ValidationCheckError: If the executable cannot be started.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ValidationCheckError(check_name, f"failed to start {command[0]}: {exc}") from exc

    try:
        stdout_b, stderr_b = await process.communicate()
    except asyncio.CancelledError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise

    return CommandOutput(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=(stdout_b or b"").decode("utf-8", errors="replace"),
        stderr=(stderr_b or b"").decode("utf-8", errors="replace"),
    )


def _has_suffix(files: Mapping[str, str], suffixes: tuple[str, ...]) -> bool:
    return any(path.endswith(suffixes) for path in files)


class ValidationCheck(ABC):
    """One independent check over a materialized file set."""

    name: str = "check"
    category: FindingCategory

    def applies_to(self, files: Mapping[str, str]) -> bool:
        return True

    @abstractmethod
    async def run(self, workspace: Path, files: Mapping[str, str]) -> list[ValidationFinding]:
        """Return findings, or raise ValidationCheckError if the check itself failed."""


# ---------------------------------------------------------------------------
# External tool checks
# ---------------------------------------------------------------------------


class CommandCheck(ValidationCheck):
    """Runs an external tool in the workspace and parses its output."""

    command: tuple[str, ...] = ()

    def build_command(self, workspace: Path) -> list[str]:
        return list(self.command)

    @abstractmethod
    def parse(self, output: CommandOutput, workspace: Path) -> list[ValidationFinding]:
        ...

    async def run(self, workspace: Path, files: Mapping[str, str]) -> list[ValidationFinding]:
        output = await run_command(self.name, self.build_command(workspace), workspace)
        findings = self.parse(output, workspace)
        if output.exit_code != 0 and not findings:
            raise ValidationCheckError(
                self.name,
                f"exited with code {output.exit_code} without parseable output: "
                f"{output.stderr.strip()[:MAX_STDERR_IN_ERROR]}",
            )
        return findings


class TypeScriptCheck(CommandCheck):
    name = "typescript"
    category = FindingCategory.TYPESCRIPT
    command = (*NPX, "tsc", "--noEmit", "--pretty", "false", "--skipLibCheck")

    def applies_to(self, files: Mapping[str, str]) -> bool:
        return _has_suffix(files, TYPESCRIPT_SUFFIXES)

    def parse(self, output: CommandOutput, workspace: Path) -> list[ValidationFinding]:
        return parse_tsc_output(output.combined, workspace)


class ESLintCheck(CommandCheck):
    name = "eslint"
    category = FindingCategory.ESLINT

    def applies_to(self, files: Mapping[str, str]) -> bool:
        return _has_suffix(files, SCRIPT_SUFFIXES)

    def build_command(self, workspace: Path) -> list[str]:
        target = "src" if (workspace / "src").is_dir() else "."
        return [*NPX, "eslint", target, "--format", "json"]

    def parse(self, output: CommandOutput, workspace: Path) -> list[ValidationFinding]:
        if not output.stdout.strip():
            return []
        try:
            return parse_eslint_json(output.stdout, workspace)
        except ValueError as exc:
            raise ValidationCheckError(self.name, str(exc)) from exc


class BuildCheck(CommandCheck):
    name = "build"
    category = FindingCategory.BUILD
    command = (*NPX, "next", "build", "--no-lint")

    def applies_to(self, files: Mapping[str, str]) -> bool:
        return _has_suffix(files, SCRIPT_SUFFIXES)

    async def run(self, workspace: Path, files: Mapping[str, str]) -> list[ValidationFinding]:
        if not (workspace / "package.json").is_file():
            logger.debug("No package.json in workspace; skipping build")
            return []
        return await super().run(workspace, files)

    def parse(self, output: CommandOutput, workspace: Path) -> list[ValidationFinding]:
        return parse_build_output(output.combined)


class SolidityCheck(CommandCheck):
    name = "solidity"
    category = FindingCategory.SOLIDITY
    command = (*NPX, "hardhat", "compile", "--force")

    def applies_to(self, files: Mapping[str, str]) -> bool:
        return any(PurePosixPath(path).suffix == ".sol" for path in files)

    def parse(self, output: CommandOutput, workspace: Path) -> list[ValidationFinding]:
        return parse_solidity_output(output.combined)


# ---------------------------------------------------------------------------
# In-process checks
# ---------------------------------------------------------------------------


class HeuristicCheck(ValidationCheck):
    name = "heuristics"
    category = FindingCategory.HEURISTIC

    async def run(self, workspace: Path, files: Mapping[str, str]) -> list[ValidationFinding]:
        findings: list[ValidationFinding] = []
        for path, content in files.items():
            findings.extend(scan_source(path, content))
        return findings


class ReferenceCheck(ValidationCheck):
    name = "references"
    category = FindingCategory.IMPORTS

    async def run(self, workspace: Path, files: Mapping[str, str]) -> list[ValidationFinding]:
        return check_references(files)


class ModelReviewCheck(ValidationCheck):
    """Asks the model to review the files; a failed review degrades like any check."""

    name = "model_review"
    category = FindingCategory.MODEL_REVIEW

    def __init__(self, reviewer: Reviewer) -> None:
        self.reviewer = reviewer

    async def run(self, workspace: Path, files: Mapping[str, str]) -> list[ValidationFinding]:
        try:
            return await self.reviewer(files)
        except (ResponseParseError, AgentError) as exc:
            raise ValidationCheckError(self.name, str(exc)) from exc


def default_checks(
    config: ValidationConfig,
    reviewer: Reviewer | None = None,
) -> list[ValidationCheck]:
    """Build the enabled checks in a fixed order."""
    checks: list[ValidationCheck] = []
    if config.enable_typescript:
        checks.append(TypeScriptCheck())
    if config.enable_eslint:
        checks.append(ESLintCheck())
    if config.enable_build:
        checks.append(BuildCheck())
    if config.enable_solidity:
        checks.append(SolidityCheck())
    if config.enable_heuristics:
        checks.append(HeuristicCheck())
    if config.enable_references:
        checks.append(ReferenceCheck())
    if config.enable_model_review:
        if reviewer is None:
            logger.warning("Model review enabled but no reviewer supplied; skipping")
        else:
            checks.append(ModelReviewCheck(reviewer))
    return checks
