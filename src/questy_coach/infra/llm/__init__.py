"""LLM and embedding provider implementations for questy_coach."""

from questy_coach.infra.llm.anthropic_provider import AnthropicProvider
from questy_coach.infra.llm.hash_embedding import HashEmbeddingStrategy, cosine_similarity
from questy_coach.infra.llm.openai_provider import OpenAIProvider

__all__ = ["AnthropicProvider", "HashEmbeddingStrategy", "OpenAIProvider", "cosine_similarity"]
