"""Model-backed stage agents for the code generation pipeline."""

from codegen_bot.agents.exceptions import (
    AgentError,
    ContextGatherError,
    ModelCallError,
    StageTimeoutError,
)
from codegen_bot.agents.code_generator import CodeGenerator
from codegen_bot.agents.code_reviewer import CodeReviewer
from codegen_bot.agents.context_gatherer import ContextGatherer
from codegen_bot.agents.intent_parser import IntentParser
from codegen_bot.agents.llm_client import LLMClient, ModelClient
from codegen_bot.agents.patch_planner import PatchPlanner, check_plan
from codegen_bot.agents.stage_runner import StageRunner

__all__ = [
    "AgentError",
    "CodeGenerator",
    "CodeReviewer",
    "ContextGatherError",
    "ContextGatherer",
    "IntentParser",
    "LLMClient",
    "ModelCallError",
    "ModelClient",
    "PatchPlanner",
    "StageRunner",
    "StageTimeoutError",
    "check_plan",
]
