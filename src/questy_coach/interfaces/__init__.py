"""Interface contracts for questy_coach.

This module exports all Protocol-based interfaces for dependency injection.
"""

from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.interfaces.llm import LLMInterface
from questy_coach.interfaces.sources import CompletionHistoryInterface, PlanSourceInterface
from questy_coach.interfaces.state_store import StateStoreInterface
from questy_coach.interfaces.vector_store import VectorBackendInterface

__all__ = [
    "CompletionHistoryInterface",
    "EmbeddingServiceInterface",
    "LLMInterface",
    "PlanSourceInterface",
    "StateStoreInterface",
    "VectorBackendInterface",
]
