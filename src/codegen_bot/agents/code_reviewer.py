"""Model-backed review used as an optional validation check."""

from collections.abc import Mapping

from codegen_bot.agents.prompts import REVIEW_SYSTEM_PROMPT, build_review_prompt
from codegen_bot.agents.stage_runner import StageRunner
from codegen_bot.models import StageKind, ValidationFinding
from codegen_bot.parsing import parse_validation_findings


class CodeReviewer:
    def __init__(self, runner: StageRunner) -> None:
        self.runner = runner

    async def review(self, files: Mapping[str, str]) -> list[ValidationFinding]:
        findings = await self.runner.run(
            StageKind.REVIEW,
            "model-review",
            REVIEW_SYSTEM_PROMPT,
            build_review_prompt(files),
            parse_validation_findings,
        )
        # Findings on files outside the reviewed set are noise
        return [f for f in findings if not f.file or f.file in files]
