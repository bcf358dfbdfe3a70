"""Pydantic models for questy_coach."""

from questy_coach.models.burnout import (
    BurnoutIndicator,
    BurnoutLevel,
    EmotionRecord,
    EmotionTrend,
    StudyAdvice,
    StudyRecommendation,
)
from questy_coach.models.context import MemoryContext, StudentMemoryExport
from questy_coach.models.mastery import SubjectStats, TopicMastery
from questy_coach.models.memory import (
    ConversationMessage,
    Emotion,
    LearningMemory,
    MemoryExtractionRequest,
    MemorySearchFilters,
    MemoryType,
    QueryIntent,
    RetrievedMemory,
    ScoreBreakdown,
    Subject,
)
from questy_coach.models.plan import PlanStatus, SessionStatus, StudyPlan, StudySession
from questy_coach.models.quest import (
    XP_BY_DIFFICULTY,
    Badge,
    BadgeCategory,
    BadgeRarity,
    DailyQuest,
    GeneratedBy,
    QuestCompletionResult,
    QuestDifficulty,
    QuestFilter,
    QuestGenerationRequest,
    QuestPreferences,
    QuestProgressUpdate,
    QuestStats,
    QuestStatus,
    QuestSummary,
    QuestType,
    StatsPeriod,
    SubjectQuestStats,
    TodayQuests,
    TypeQuestStats,
)
from questy_coach.models.routing import HandlerRole, IntentCategory, ModelTier, RouteDecision
from questy_coach.models.schedule import (
    ActionButton,
    AutoRescheduleResult,
    ButtonAction,
    CarryOverAction,
    CrisisLevel,
    DelayAnalysis,
    DelayNotification,
    ExpiredQuest,
    Feasibility,
    IncompleteQuest,
    MessageAction,
    MessageActionType,
    ModificationStrategy,
    NotificationPriority,
    NotificationType,
    PlanSettings,
    RescheduleOption,
    RescheduleStrategy,
    RescheduleSuggestion,
    ScheduleChangeRequest,
    ScheduleModificationResult,
    StudentPattern,
    SuggestedQuest,
    SuggestionType,
)

__all__ = [
    "XP_BY_DIFFICULTY",
    "ActionButton",
    "AutoRescheduleResult",
    "Badge",
    "BadgeCategory",
    "BadgeRarity",
    "BurnoutIndicator",
    "BurnoutLevel",
    "ButtonAction",
    "CarryOverAction",
    "ConversationMessage",
    "CrisisLevel",
    "DailyQuest",
    "DelayAnalysis",
    "DelayNotification",
    "Emotion",
    "EmotionRecord",
    "EmotionTrend",
    "ExpiredQuest",
    "Feasibility",
    "GeneratedBy",
    "HandlerRole",
    "IncompleteQuest",
    "IntentCategory",
    "LearningMemory",
    "MemoryContext",
    "MemoryExtractionRequest",
    "MemorySearchFilters",
    "MemoryType",
    "MessageAction",
    "MessageActionType",
    "ModelTier",
    "ModificationStrategy",
    "NotificationPriority",
    "NotificationType",
    "PlanSettings",
    "PlanStatus",
    "QueryIntent",
    "QuestCompletionResult",
    "QuestDifficulty",
    "QuestFilter",
    "QuestGenerationRequest",
    "QuestPreferences",
    "QuestProgressUpdate",
    "QuestStats",
    "QuestStatus",
    "QuestSummary",
    "QuestType",
    "RescheduleOption",
    "RescheduleStrategy",
    "RescheduleSuggestion",
    "RetrievedMemory",
    "RouteDecision",
    "ScheduleChangeRequest",
    "ScheduleModificationResult",
    "ScoreBreakdown",
    "SessionStatus",
    "StatsPeriod",
    "StudentMemoryExport",
    "StudentPattern",
    "StudyAdvice",
    "StudyPlan",
    "StudyRecommendation",
    "StudySession",
    "Subject",
    "SubjectQuestStats",
    "SubjectStats",
    "SuggestedQuest",
    "SuggestionType",
    "TodayQuests",
    "TopicMastery",
    "TypeQuestStats",
]
