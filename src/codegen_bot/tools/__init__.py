"""Read-only tool-call execution for context gathering."""

from codegen_bot.tools.exceptions import ToolExecutionError, ToolNotAllowedError
from codegen_bot.tools.executor import ALLOWED_TOOLS, ToolCallExecutor, format_tool_results

__all__ = [
    "ALLOWED_TOOLS",
    "ToolCallExecutor",
    "ToolExecutionError",
    "ToolNotAllowedError",
    "format_tool_results",
]
