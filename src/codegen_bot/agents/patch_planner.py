"""Planning stage: describes per-file changes without writing code."""

from collections.abc import Mapping

from codegen_bot.agents.prompts import PLAN_SYSTEM_PROMPT, build_plan_prompt
from codegen_bot.agents.stage_runner import StageRunner
from codegen_bot.models import IntentSpec, PatchPlan, StageKind
from codegen_bot.parsing import parse_patch_plan


class PatchPlanner:
    """Produces the PatchPlan consumed by code generation."""

    def __init__(self, runner: StageRunner) -> None:
        self.runner = runner

    async def plan(
        self,
        request: str,
        intent: IntentSpec,
        files: Mapping[str, str],
        context_notes: str = "",
    ) -> PatchPlan:
        """Run the planning stage.

        Plan entries that modify or delete files missing from the project are
        kept but logged; code generation decides how to handle them.

        Raises:
            StageParseError: If the plan cannot be parsed.
            StageTimeoutError: If the model call times out.
        """
        plan = await self.runner.run(
            StageKind.PLAN,
            "patch-plan",
            PLAN_SYSTEM_PROMPT,
            build_plan_prompt(request, intent, files, context_notes),
            parse_patch_plan,
        )
        for issue in check_plan(plan, files):
            self.runner.logger.warning("Plan issue: %s", issue)
        return plan


def check_plan(plan: PatchPlan, files: Mapping[str, str]) -> list[str]:
    issues: list[str] = []
    seen: set[str] = set()
    for patch in plan.patches:
        if patch.path in seen:
            issues.append(f"{patch.path} planned more than once")
        seen.add(patch.path)
        if patch.operation in ("modify", "delete") and patch.path not in files:
            issues.append(f"{patch.operation} of unknown file {patch.path}")
        if patch.operation == "create" and patch.path in files:
            issues.append(f"create of existing file {patch.path} will overwrite it")
    return issues
