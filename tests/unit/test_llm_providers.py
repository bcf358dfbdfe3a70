"""Unit tests for the OpenAI and Anthropic providers with stubbed SDK clients."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from questy_coach.config import LLMSettings
from questy_coach.infra.llm.anthropic_provider import DEFAULT_ANTHROPIC_MODEL, AnthropicProvider
from questy_coach.infra.llm.openai_provider import OpenAIProvider


def _settings(**overrides: object) -> LLMSettings:
    return LLMSettings(api_key="sk-test", embedding_dimensions=2, **overrides)


class TestOpenAIProvider:
    """Tests for completions and cached embeddings."""

    @pytest.mark.asyncio
    async def test_complete_uses_configured_model(self) -> None:
        provider = OpenAIProvider(_settings())
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content="Keep going! 💪"))]
            )
        )

        reply = await provider.complete("You are a coach.", "Write a daily message.")

        assert reply == "Keep going! 💪"
        kwargs = provider._client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "You are a coach."}

    @pytest.mark.asyncio
    async def test_batch_requests_only_cache_misses(self) -> None:
        cache = AsyncMock()
        cache.get.side_effect = [[1.0, 0.0], None]
        provider = OpenAIProvider(_settings(), embedding_cache=cache)
        provider._client = MagicMock()
        provider._client.embeddings.create = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(index=0, embedding=[0.0, 1.0])])
        )

        vectors = await provider.embed_batch(["cached", "fresh"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        assert provider._client.embeddings.create.await_args.kwargs["input"] == ["fresh"]
        cache.set.assert_awaited_once_with("fresh", [0.0, 1.0])

    @pytest.mark.asyncio
    async def test_similarity_is_clipped(self) -> None:
        provider = OpenAIProvider(_settings())

        assert await provider.similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0
        assert await provider.similarity([1.0, 0.0], [0.0, 0.0]) == 0.0
        assert await provider.similarity([1.0, 1.0], [2.0, 2.0]) == pytest.approx(1.0)


class TestAnthropicProvider:
    """Tests for Claude completions."""

    def test_non_claude_model_is_replaced(self) -> None:
        assert AnthropicProvider(_settings())._model == DEFAULT_ANTHROPIC_MODEL
        assert AnthropicProvider(_settings(model="claude-sonnet-4-0"))._model == (
            "claude-sonnet-4-0"
        )

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self) -> None:
        provider = AnthropicProvider(_settings())
        provider._client = MagicMock()
        provider._client.messages.create = AsyncMock(
            return_value=SimpleNamespace(
                content=[
                    SimpleNamespace(type="text", text="Nice work. "),
                    SimpleNamespace(type="tool_use", text="ignored"),
                    SimpleNamespace(type="text", text="Rest a bit."),
                ]
            )
        )

        reply = await provider.complete("You are a coach.", "I finished my quests.")

        assert reply == "Nice work. Rest a bit."
        kwargs = provider._client.messages.create.await_args.kwargs
        assert kwargs["system"] == "You are a coach."
        assert kwargs["max_tokens"] == 1024
