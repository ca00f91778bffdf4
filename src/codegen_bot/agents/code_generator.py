"""Code generation and repair stages."""

from collections.abc import Mapping

from codegen_bot.agents.prompts import (
    GENERATE_SYSTEM_PROMPT,
    REPAIR_SYSTEM_PROMPT,
    build_generate_prompt,
    build_repair_prompt,
)
from codegen_bot.agents.stage_runner import StageRunner
from codegen_bot.models import (
    ChangeOperation,
    IntentSpec,
    PatchPlan,
    StageKind,
    ValidationFinding,
)
from codegen_bot.parsing import parse_change_operations


def _parse_generated(raw: str) -> list[ChangeOperation]:
    return parse_change_operations(raw, StageKind.GENERATE)


def _parse_repaired(raw: str) -> list[ChangeOperation]:
    return parse_change_operations(raw, StageKind.REPAIR)


class CodeGenerator:
    """The single place where code is authored."""

    def __init__(self, runner: StageRunner) -> None:
        self.runner = runner

    async def generate(
        self,
        request: str,
        intent: IntentSpec,
        plan: PatchPlan,
        files: Mapping[str, str],
    ) -> list[ChangeOperation]:
        """Generate change operations for every planned file.

        Raises:
            StageParseError: If the response cannot be parsed.
            StageTimeoutError: If the model call times out.
        """
        operations = await self.runner.run(
            StageKind.GENERATE,
            "code-generate",
            GENERATE_SYSTEM_PROMPT,
            build_generate_prompt(request, intent, plan, files),
            _parse_generated,
        )
        planned = set(plan.paths())
        extra = [op.path for op in operations if op.path not in planned]
        if extra:
            self.runner.logger.warning("Generated files outside the plan: %s", ", ".join(extra))
        return operations

    async def repair(
        self,
        files: Mapping[str, str],
        paths: list[str],
        findings: list[ValidationFinding],
    ) -> list[ChangeOperation]:
        """Regenerate only ``paths`` given the validation errors found in them."""
        return await self.runner.run(
            StageKind.REPAIR,
            "repair-generate",
            REPAIR_SYSTEM_PROMPT,
            build_repair_prompt(files, paths, findings),
            _parse_repaired,
        )
