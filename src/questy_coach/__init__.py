"""questy_coach - Personalization and scheduling engine for a study-coach assistant.

This package provides tools for:
- Routing student messages to the right handler and model tier
- Capturing learning memories and retrieving them as prompt context
- SM-2 spaced repetition and burnout monitoring per student
- Generating, tracking and gamifying daily study quests
- Detecting schedule delays and rescheduling unfinished work

Example usage:
    from questy_coach import (
        QuestyCoach,
        MongoVectorBackend,
        OpenAIProvider,
        QuestGenerationRequest,
    )

    # Simple usage - config loaded from .env automatically
    async with QuestyCoach(
        vector_backend_class=MongoVectorBackend,
        llm_class=OpenAIProvider,
        plan_source=plan_source,
    ) as coach:
        today = await coach.generate_today_quests(
            QuestGenerationRequest(student_id="student-1", date=date.today())
        )
        context = await coach.get_context_for_prompt("student-1", "quadratic mistakes")
"""

__version__ = "0.1.0"

from questy_coach.config import QuestyCoachConfig
from questy_coach.engine import QuestyCoach

# Implementations
from questy_coach.infra.llm.anthropic_provider import AnthropicProvider
from questy_coach.infra.llm.hash_embedding import HashEmbeddingStrategy
from questy_coach.infra.llm.openai_provider import OpenAIProvider
from questy_coach.infra.local.state_store import InMemoryStateStore
from questy_coach.infra.local.vector_backend import InMemoryVectorBackend
from questy_coach.infra.mongo.vector_backend import MongoVectorBackend
from questy_coach.infra.redis.state_store import RedisStateStore

# Interfaces
from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.interfaces.llm import LLMInterface
from questy_coach.interfaces.sources import CompletionHistoryInterface, PlanSourceInterface
from questy_coach.interfaces.state_store import StateStoreInterface
from questy_coach.interfaces.vector_store import VectorBackendInterface

# Request models
from questy_coach.models.memory import ConversationMessage, MemoryExtractionRequest, Subject
from questy_coach.models.plan import StudyPlan, StudySession
from questy_coach.models.quest import QuestGenerationRequest, QuestPreferences
from questy_coach.models.schedule import PlanSettings, ScheduleChangeRequest, StudentPattern

__all__ = [  # noqa: RUF022
    # Engine
    "QuestyCoach",
    "QuestyCoachConfig",
    # Implementations
    "AnthropicProvider",
    "HashEmbeddingStrategy",
    "InMemoryStateStore",
    "InMemoryVectorBackend",
    "MongoVectorBackend",
    "OpenAIProvider",
    "RedisStateStore",
    # Interfaces
    "CompletionHistoryInterface",
    "EmbeddingServiceInterface",
    "LLMInterface",
    "PlanSourceInterface",
    "StateStoreInterface",
    "VectorBackendInterface",
    # Request models
    "ConversationMessage",
    "MemoryExtractionRequest",
    "PlanSettings",
    "QuestGenerationRequest",
    "QuestPreferences",
    "ScheduleChangeRequest",
    "StudentPattern",
    "StudyPlan",
    "StudySession",
    "Subject",
]
