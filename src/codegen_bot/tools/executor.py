"""Allow-listed, read-only command execution for context gathering."""

import asyncio
import contextlib
import logging
import re
import time
from pathlib import Path

from codegen_bot.models import ToolExecutionResult
from codegen_bot.tools.exceptions import ToolNotAllowedError

logger = logging.getLogger(__name__)

# Constants
ALLOWED_TOOLS = frozenset({
    "grep", "find", "tree", "cat", "head", "tail", "wc", "ls",
    "file", "pwd", "basename", "dirname", "realpath",
})
MAX_OUTPUT_CHARS = 10_000
DEFAULT_TIMEOUT = 5.0
MAX_ARGS = 10
NO_MATCH_EXIT_CODES = {"grep": 1}  # grep exits 1 when nothing matches

DANGEROUS_ARG_PATTERNS = [
    re.compile(r"[;&|`$]"),                 # Shell metacharacters
    re.compile(r"[<>]"),                    # Redirection
    re.compile(r"\.\."),                    # Parent directory traversal
    re.compile(r"^/(etc|proc|sys|dev|root|var)(/|$)"),
    re.compile(r"\b(rm|mv|cp|chmod|chown|sudo|wget|curl|nc|eval|exec|system)\b"),
    re.compile(r"^-(delete|ok|okdir|fprint|fprint0|fprintf|fls)$"),
]


class ToolCallExecutor:
    """Runs allow-listed inspection commands inside a project root.

    Commands run without a shell, with a per-call timeout and capped output.
    Rejected or failing commands produce an unsuccessful ToolExecutionResult
    rather than an exception.
    """

    def __init__(
        self,
        project_root: str | Path,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        max_output_chars: int = MAX_OUTPUT_CHARS,
        allowed_tools: frozenset[str] = ALLOWED_TOOLS,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.timeout_seconds = timeout_seconds
        self.max_output_chars = max_output_chars
        self.allowed_tools = allowed_tools

    def validate_command(
        self,
        tool_name: str,
        args: list[str],
        working_directory: str = ".",
    ) -> Path:
        """Check a command against the allow-list and argument rules.

        Returns:
            The resolved working directory.

        Raises:
            ToolNotAllowedError: If the tool, any argument or the working
                directory is rejected.
        """
        if tool_name not in self.allowed_tools:
            raise ToolNotAllowedError(f"Tool '{tool_name}' is not allowed")
        if len(args) > MAX_ARGS:
            raise ToolNotAllowedError(f"Too many arguments ({len(args)} > {MAX_ARGS})")
        for arg in args:
            for pattern in DANGEROUS_ARG_PATTERNS:
                if pattern.search(arg):
                    raise ToolNotAllowedError(f"Argument {arg!r} is not allowed")

        cwd = (self.project_root / (working_directory or ".")).resolve()
        if not cwd.is_relative_to(self.project_root):
            raise ToolNotAllowedError(
                f"Working directory '{working_directory}' is outside the project root"
            )
        if not cwd.is_dir():
            raise ToolNotAllowedError(f"Working directory '{working_directory}' does not exist")
        return cwd

    def _truncate(self, text: str) -> str:
        if len(text) <= self.max_output_chars:
            return text
        return text[: self.max_output_chars] + "\n... [output truncated]"

    async def execute(
        self,
        tool_name: str,
        args: list[str],
        working_directory: str = ".",
    ) -> ToolExecutionResult:
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            cwd = self.validate_command(tool_name, args, working_directory)
        except ToolNotAllowedError as exc:
            logger.warning("Rejected tool call %s %s: %s", tool_name, args, exc)
            return ToolExecutionResult(success=False, error=str(exc), elapsed_ms=elapsed())

        try:
            process = await asyncio.create_subprocess_exec(
                tool_name,
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return ToolExecutionResult(
                success=False, error=f"Failed to start {tool_name}: {exc}", elapsed_ms=elapsed()
            )

        try:
            stdout_b, stderr_b = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            return ToolExecutionResult(
                success=False,
                error=f"{tool_name} timed out after {self.timeout_seconds}s",
                elapsed_ms=elapsed(),
            )
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise

        stdout = (stdout_b or b"").decode("utf-8", errors="replace")
        stderr = (stderr_b or b"").decode("utf-8", errors="replace")
        if process.returncode == 0 or process.returncode == NO_MATCH_EXIT_CODES.get(tool_name):
            return ToolExecutionResult(
                success=True, output=self._truncate(stdout), elapsed_ms=elapsed()
            )
        return ToolExecutionResult(
            success=False,
            output=self._truncate(stdout),
            error=stderr.strip() or f"{tool_name} exited with code {process.returncode}",
            elapsed_ms=elapsed(),
        )


def format_tool_results(results: list[tuple[str, list[str], ToolExecutionResult]]) -> str:
    """Render executed tool calls as prompt sections."""
    sections: list[str] = []
    for tool_name, args, result in results:
        command = " ".join([tool_name, *args])
        if result.success:
            sections.append(f"## {command}\n{result.output.rstrip()}")
        else:
            sections.append(f"## {command} (FAILED)\n{result.error or ''}")
    return "\n\n".join(sections)
