"""Service layer for questy_coach.

This module exports the main service entry points.
"""

from questy_coach.services.auto_rescheduler import AutoRescheduler
from questy_coach.services.burnout_monitor import BurnoutMonitor
from questy_coach.services.context_injector import MemoryContextInjector
from questy_coach.services.delay_handler import ScheduleDelayHandler, determine_crisis_level
from questy_coach.services.intent_classifier import IntentClassifier
from questy_coach.services.memory_catcher import LearningMemoryCatcher
from questy_coach.services.memory_lane import MemoryLane
from questy_coach.services.memory_retriever import MemoryRetriever, ReRankingWeights
from questy_coach.services.quest_generator import QuestGenerator, summarize_quests
from questy_coach.services.quest_tracker import QuestTracker
from questy_coach.services.schedule_modifier import ScheduleModifier
from questy_coach.services.spaced_repetition import SpacedRepetitionManager
from questy_coach.services.vector_store import VectorMemoryStore

__all__ = [
    "AutoRescheduler",
    "BurnoutMonitor",
    "IntentClassifier",
    "LearningMemoryCatcher",
    "MemoryContextInjector",
    "MemoryLane",
    "MemoryRetriever",
    "QuestGenerator",
    "QuestTracker",
    "ReRankingWeights",
    "ScheduleDelayHandler",
    "ScheduleModifier",
    "SpacedRepetitionManager",
    "VectorMemoryStore",
    "determine_crisis_level",
    "summarize_quests",
]
