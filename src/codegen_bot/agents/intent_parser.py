"""Intent stage: turns the request into a typed IntentSpec."""

from collections.abc import Mapping

from codegen_bot.agents.prompts import INTENT_SYSTEM_PROMPT, build_intent_prompt
from codegen_bot.agents.stage_runner import StageRunner
from codegen_bot.models import IntentSpec, StageKind
from codegen_bot.parsing import parse_intent_spec


class IntentParser:
    def __init__(self, runner: StageRunner) -> None:
        self.runner = runner

    async def parse(
        self,
        request: str,
        files: Mapping[str, str],
        context_notes: str = "",
    ) -> IntentSpec:
        intent = await self.runner.run(
            StageKind.INTENT,
            "intent-parse",
            INTENT_SYSTEM_PROMPT,
            build_intent_prompt(request, files, context_notes),
            parse_intent_spec,
        )
        unknown = [path for path in intent.target_files if path not in files]
        if unknown:
            self.runner.logger.info("Intent targets new files: %s", ", ".join(unknown))
        return intent
