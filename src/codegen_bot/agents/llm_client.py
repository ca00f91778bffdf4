"""Model-call capability used by every pipeline stage."""

import logging
import os
from typing import Literal, Protocol

import anthropic
from anthropic import AsyncAnthropic
import openai

from codegen_bot.agents.exceptions import AgentError, ModelCallError
from codegen_bot.models import StageKind

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"


class ModelClient(Protocol):
    """Anything that can turn a system + user prompt into raw response text."""

    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        stage_label: str,
        stage_kind: StageKind,
        max_tokens: int,
    ) -> str: ...


class LLMClient:
    """Anthropic-first model client with optional OpenAI fallback."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        openai_api_key: str | None = None,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
    ) -> None:
        """Initialize provider clients.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model ID used for every stage.
            openai_api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            llm_provider: "auto", "anthropic" or "openai".
            llm_fallback_provider: Provider tried after the primary fails.
            allow_fallback: Enable the fallback provider.

        Raises:
            AgentError: If no API key is found, or the requested provider
                has no key.
        """
        self.model: str = model
        self.api_key: str | None = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.openai_api_key: str | None = openai_api_key or os.getenv("OPENAI_API_KEY")
        self._anthropic_client: AsyncAnthropic | None = None
        self._openai_client: openai.AsyncOpenAI | None = None

        if self.api_key:
            self._anthropic_client = AsyncAnthropic(api_key=self.api_key)
        if self.openai_api_key:
            self._openai_client = openai.AsyncOpenAI(api_key=self.openai_api_key)

        if not (self._anthropic_client or self._openai_client):
            raise AgentError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameter, ANTHROPIC_API_KEY or OPENAI_API_KEY env vars."
            )

        self.llm_provider = self._normalize_provider(llm_provider)
        self.llm_fallback_provider = (
            self._normalize_provider(llm_fallback_provider)
            if llm_fallback_provider
            else None
        )
        self.allow_fallback = bool(allow_fallback)

        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise AgentError("No Anthropic API key found for provider 'anthropic'.")
        if self.llm_provider == "openai" and self._openai_client is None:
            raise AgentError("No OpenAI API key found for provider 'openai'.")

    def _normalize_provider(self, value: str) -> Literal["anthropic", "openai", "auto"]:
        if value not in {"auto", "anthropic", "openai"}:
            raise AgentError(f"Unsupported provider: {value}")
        return value

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return OPENAI_DEFAULT_MODEL
        return self.model

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        if self.allow_fallback and self.llm_fallback_provider:
            fallback = self.llm_fallback_provider
            if fallback != chain[0]:
                chain.append(fallback)
        return chain

    async def _call_anthropic(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        if self._anthropic_client is None:
            raise ModelCallError("Anthropic client unavailable")
        response = await self._anthropic_client.messages.create(
            model=self._resolve_model("anthropic"),
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.debug("Anthropic response stopped at max_tokens=%d", max_tokens)
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", "") == "text"
        )

    async def _call_openai(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        if self._openai_client is None:
            raise ModelCallError("OpenAI client unavailable")
        response = await self._openai_client.chat.completions.create(
            model=self._resolve_model("openai"),
            max_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return response.choices[0].message.content or ""

    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        stage_label: str,
        stage_kind: StageKind,
        max_tokens: int,
    ) -> str:
        """Send one prompt through the provider chain and return the text.

        Raises:
            ModelCallError: If every provider in the chain fails.
        """
        providers = self._provider_chain()
        last_error: Exception | None = None
        for index, provider in enumerate(providers):
            try:
                if provider == "anthropic":
                    return await self._call_anthropic(system_prompt, user_prompt, max_tokens)
                return await self._call_openai(system_prompt, user_prompt, max_tokens)
            except (ModelCallError, anthropic.AnthropicError, openai.OpenAIError) as error:
                last_error = error
                if index < len(providers) - 1:
                    logger.warning(
                        "%s call for %s failed (%s); falling back to %s",
                        provider, stage_label, type(error).__name__, providers[index + 1],
                    )

        raise ModelCallError(
            f"[{stage_kind.value}] model call '{stage_label}' failed: {last_error}"
        ) from last_error
