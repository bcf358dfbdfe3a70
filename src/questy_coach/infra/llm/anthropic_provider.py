"""Anthropic LLM provider for questy_coach.

Anthropic has no embedding API; pair this provider with OpenAI or
the hash embedding strategy for memory vectors.
"""

from typing import Any, Self

from anthropic import AsyncAnthropic

from questy_coach.config import LLMSettings
from questy_coach.interfaces.llm import LLMInterface
from questy_coach.logging import get_logger

__all__ = [
    "AnthropicProvider",
]

logger = get_logger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-3-5-haiku-latest"


class AnthropicProvider(LLMInterface):
    """Anthropic completions for daily messages and coach replies.

    Models that are not Claude models (e.g. the OpenAI default in
    LLMSettings) are replaced with a Claude model.
    """

    config_class = LLMSettings

    def __init__(self, settings: LLMSettings) -> None:
        self._settings = settings
        api_key = settings.api_key.get_secret_value() if settings.api_key else None
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
        )
        model = settings.model
        self._model = model if model.startswith("claude") else DEFAULT_ANTHROPIC_MODEL

    @classmethod
    async def from_config(cls, config: LLMSettings) -> Self:
        return cls(config)

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        return cls(LLMSettings(**config))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a message completion."""
        response = await self._client.messages.create(
            model=model or self._model,
            max_tokens=max_tokens or self._settings.max_tokens,
            temperature=self._settings.temperature if temperature is None else temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        logger.debug("completion_generated", model=model or self._model, length=len(text))
        return text
