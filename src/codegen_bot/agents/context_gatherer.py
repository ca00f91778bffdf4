"""Context-gathering stage: lets the model inspect the project before planning."""

from collections.abc import Mapping

from codegen_bot.agents.exceptions import AgentError, ContextGatherError
from codegen_bot.agents.prompts import CONTEXT_SYSTEM_PROMPT, build_context_prompt
from codegen_bot.agents.stage_runner import StageRunner
from codegen_bot.models import ContextRequest, StageKind, ToolExecutionResult
from codegen_bot.parsing import StageParseError, parse_context_request
from codegen_bot.tools import ToolCallExecutor, format_tool_results

DEFAULT_MAX_TOOL_CALLS = 3


class ContextGatherer:
    """Asks the model whether the request is ambiguous and runs its tool calls."""

    def __init__(
        self,
        runner: StageRunner,
        executor: ToolCallExecutor | None = None,
        max_tool_calls: int = DEFAULT_MAX_TOOL_CALLS,
    ) -> None:
        self.runner = runner
        self.executor = executor
        self.max_tool_calls = max_tool_calls

    async def gather(
        self,
        request: str,
        files: Mapping[str, str],
    ) -> tuple[ContextRequest, str]:
        """Run the context stage.

        Returns:
            Tuple of (the model's ContextRequest, context notes for later
            prompts). Notes are "" when the model needs no context.

        Raises:
            ContextGatherError: If the context response cannot be obtained
                or parsed.
        """
        try:
            context = await self.runner.run(
                StageKind.CONTEXT,
                "context-gather",
                CONTEXT_SYSTEM_PROMPT,
                build_context_prompt(request, files),
                parse_context_request,
            )
        except (StageParseError, AgentError) as exc:
            raise ContextGatherError(f"Context gathering failed: {exc}") from exc
        if not context.needs_context:
            return context, ""

        if self.executor is None:
            self.runner.logger.warning(
                "Model asked for context but no tool executor is configured"
            )
            return context, context.context_summary

        calls = context.tool_calls[: self.max_tool_calls]
        if len(context.tool_calls) > len(calls):
            self.runner.logger.warning(
                "Model requested %d tool calls; running the first %d",
                len(context.tool_calls), len(calls),
            )

        results: list[tuple[str, list[str], ToolExecutionResult]] = []
        for call in calls:
            result = await self.executor.execute(call.tool, call.args, call.working_directory)
            if not result.success:
                self.runner.logger.warning(
                    "Tool call %s %s failed: %s", call.tool, " ".join(call.args), result.error
                )
            results.append((call.tool, call.args, result))

        notes = format_tool_results(results)
        if context.context_summary:
            notes = f"{context.context_summary}\n\n{notes}"
        return context, notes
