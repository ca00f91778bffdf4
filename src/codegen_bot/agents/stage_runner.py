"""Runs one model stage with budgets, timeouts and a single truncation retry."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TypeVar

from codegen_bot.agents.exceptions import StageTimeoutError
from codegen_bot.agents.llm_client import ModelClient
from codegen_bot.config import PipelineConfig
from codegen_bot.models import StageKind
from codegen_bot.parsing import StageParseError, is_truncated
from codegen_bot.run_logging import LoggerLike

T = TypeVar("T")


class StageRunner:
    """Calls the model for a stage and parses its response."""

    def __init__(
        self,
        model_client: ModelClient,
        config: PipelineConfig | None = None,
        logger: LoggerLike | None = None,
    ) -> None:
        self.model_client = model_client
        self.config = config or PipelineConfig()
        self.logger: LoggerLike = logger or logging.getLogger(__name__)

    async def _call(
        self,
        stage: StageKind,
        label: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        started = time.monotonic()
        try:
            raw = await asyncio.wait_for(
                self.model_client.call(
                    system_prompt,
                    user_prompt,
                    label,
                    stage,
                    max_tokens=max_tokens,
                ),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise StageTimeoutError(stage, timeout_seconds) from exc

        raw = raw or ""
        self.logger.info(
            "Stage %s returned %d chars in %.1fs (max_tokens=%d)",
            label, len(raw), time.monotonic() - started, max_tokens,
        )
        return raw

    async def run(
        self,
        stage: StageKind,
        label: str,
        system_prompt: str,
        user_prompt: str,
        parser: Callable[[str], T],
    ) -> T:
        """Call the model for a stage and parse the response.

        A response that fails to parse and looks truncated is retried exactly
        once with a larger output budget. Anything else that fails to parse
        is not retried.

        Args:
            stage: Which stage budget and timeout to use.
            label: Human-readable label passed to the model client and logs.
            system_prompt: Stage system prompt.
            user_prompt: Stage user prompt.
            parser: Turns raw text into the typed payload; raises StageParseError.

        Returns:
            The parsed payload.

        Raises:
            StageParseError: If the response (after any retry) cannot be parsed.
            StageTimeoutError: If a model call exceeds the stage timeout.
        """
        budget = self.config.budget_for(stage)
        raw = await self._call(
            stage, label, system_prompt, user_prompt,
            budget.max_tokens, budget.timeout_seconds,
        )
        try:
            return parser(raw)
        except StageParseError:
            if not is_truncated(raw):
                raise

        retry_tokens = budget.retry_tokens()
        self.logger.warning(
            "Stage %s response looks truncated (%d chars); retrying once with max_tokens=%d",
            label, len(raw), retry_tokens,
        )
        raw = await self._call(
            stage, label, system_prompt, user_prompt,
            retry_tokens, budget.timeout_seconds,
        )
        return parser(raw)
