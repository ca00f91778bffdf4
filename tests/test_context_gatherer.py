"""Tests for the optional context-gathering stage."""

import pytest

from codegen_bot.agents import ContextGatherer, ContextGatherError, StageRunner
from codegen_bot.models import StageKind
from codegen_bot.tools import ToolCallExecutor
from helpers import ScriptedModelClient, wrap_json

FILES = {"src/app.ts": "export const title = 'Home';\n"}


def make_gatherer(responses, executor=None, max_tool_calls=3):
    client = ScriptedModelClient({StageKind.CONTEXT: responses})
    return client, ContextGatherer(StageRunner(client), executor, max_tool_calls=max_tool_calls)


class TestContextGatherer:
    @pytest.mark.asyncio
    async def test_no_context_needed(self):
        client, gatherer = make_gatherer([wrap_json({"needsContext": False})])

        context, notes = await gatherer.gather("Add a banner", FILES)

        assert context.needs_context is False
        assert notes == ""
        assert client.stages() == [StageKind.CONTEXT]

    @pytest.mark.asyncio
    async def test_tool_calls_are_executed(self, project_tree):
        payload = {
            "needsContext": True,
            "toolCalls": [{"tool": "grep", "args": ["-rn", "Banner", "src"], "reason": "usages"}],
            "contextSummary": "Banner is imported by app.ts",
        }
        _, gatherer = make_gatherer([wrap_json(payload)], ToolCallExecutor(project_tree))

        _, notes = await gatherer.gather("Rename Banner", FILES)

        assert notes.startswith("Banner is imported by app.ts")
        assert "## grep -rn Banner src" in notes
        assert "src/app.ts" in notes

    @pytest.mark.asyncio
    async def test_tool_calls_capped(self, project_tree):
        payload = {
            "needsContext": True,
            "toolCalls": [{"tool": "ls", "args": [name]} for name in ["src", "src/components", "."]],
        }
        _, gatherer = make_gatherer([wrap_json(payload)], ToolCallExecutor(project_tree), max_tool_calls=1)

        _, notes = await gatherer.gather("Look around", FILES)

        assert notes.count("## ls") == 1

    @pytest.mark.asyncio
    async def test_rejected_tool_call_reported_in_notes(self, project_tree):
        payload = {"needsContext": True, "toolCalls": [{"tool": "rm", "args": ["-rf", "src"]}]}
        _, gatherer = make_gatherer([wrap_json(payload)], ToolCallExecutor(project_tree))

        _, notes = await gatherer.gather("Clean up", FILES)

        assert "(FAILED)" in notes
        assert (project_tree / "src").exists()

    @pytest.mark.asyncio
    async def test_without_executor_uses_summary(self):
        payload = {"needsContext": True, "toolCalls": [{"tool": "ls"}], "contextSummary": "Need a listing"}
        _, gatherer = make_gatherer([wrap_json(payload)])

        _, notes = await gatherer.gather("Look around", FILES)

        assert notes == "Need a listing"

    @pytest.mark.asyncio
    async def test_unparseable_response_raises_context_error(self):
        _, gatherer = make_gatherer(["I would like to look at some files first."])

        with pytest.raises(ContextGatherError, match="Context gathering failed"):
            await gatherer.gather("Add a banner", FILES)
