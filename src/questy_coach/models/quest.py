"""Quest models for questy_coach.

DailyQuest and TodayQuests are mutable records owned by the quest
tracker; everything else is an immutable value.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from questy_coach.models.memory import Subject

__all__ = [
    "XP_BY_DIFFICULTY",
    "Badge",
    "BadgeCategory",
    "BadgeRarity",
    "DailyQuest",
    "GeneratedBy",
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
    "StatsPeriod",
    "SubjectQuestStats",
    "TodayQuests",
    "TypeQuestStats",
]


class QuestType(StrEnum):
    STUDY = "STUDY"
    REVIEW = "REVIEW"
    PRACTICE = "PRACTICE"
    CHALLENGE = "CHALLENGE"
    STREAK = "STREAK"
    MILESTONE = "MILESTONE"


class QuestStatus(StrEnum):
    """Quest lifecycle state.

    LOCKED waits on prerequisites. COMPLETED, EXPIRED and SKIPPED are terminal.
    """

    LOCKED = "LOCKED"
    AVAILABLE = "AVAILABLE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self in (QuestStatus.COMPLETED, QuestStatus.EXPIRED, QuestStatus.SKIPPED)


class QuestDifficulty(StrEnum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"
    EXTREME = "EXTREME"


XP_BY_DIFFICULTY: dict[QuestDifficulty, int] = {
    QuestDifficulty.EASY: 10,
    QuestDifficulty.MEDIUM: 25,
    QuestDifficulty.HARD: 50,
    QuestDifficulty.EXTREME: 100,
}


class GeneratedBy(StrEnum):
    SYSTEM = "SYSTEM"
    PLANNER = "PLANNER"
    COACH = "COACH"
    FALLBACK = "FALLBACK"


class StatsPeriod(StrEnum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    ALL = "ALL"


class BadgeCategory(StrEnum):
    ACHIEVEMENT = "ACHIEVEMENT"
    STREAK = "STREAK"
    MASTERY = "MASTERY"
    SPECIAL = "SPECIAL"


class BadgeRarity(StrEnum):
    COMMON = "COMMON"
    UNCOMMON = "UNCOMMON"
    RARE = "RARE"
    EPIC = "EPIC"
    LEGENDARY = "LEGENDARY"


class DailyQuest(BaseModel):
    """A single quest for one student on one day.

    Attributes:
        id: Quest identifier (deterministic per student, date and source)
        student_id: Owning student
        date: Day the quest belongs to
        type: Quest category
        title: Short title
        description: Longer description
        subject: Subject of the quest
        plan_id: Plan the quest was derived from
        session_id: Plan session the quest was derived from
        topic_id: Topic reviewed by the quest
        target_value: Goal amount (minutes, sessions, days)
        current_value: Progress towards the goal
        unit: Unit of target_value
        status: Lifecycle state
        difficulty: Difficulty bucket
        priority: 1 (highest) and up
        xp_reward: XP awarded on completion
        streak_bonus: Extra XP awarded on completion
        badge_id: Badge tied to the quest
        estimated_minutes: Expected effort
        started_at: First progress time
        completed_at: Completion time
        expires_at: Deadline (end of the quest's day)
        tags: Free-form tags
        prerequisites: Quest IDs that must complete before this one unlocks
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    student_id: str
    date: date
    type: QuestType
    title: str
    description: str = ""
    subject: Subject = Subject.GENERAL
    plan_id: str | None = None
    session_id: str | None = None
    topic_id: str | None = None
    target_value: int = Field(ge=0)
    current_value: int = Field(default=0, ge=0)
    unit: str = "min"
    status: QuestStatus = QuestStatus.AVAILABLE
    difficulty: QuestDifficulty = QuestDifficulty.MEDIUM
    priority: int = Field(default=1, ge=0)
    xp_reward: int = Field(default=0, ge=0)
    streak_bonus: int | None = None
    badge_id: str | None = None
    estimated_minutes: int = Field(default=0, ge=0)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    expires_at: datetime
    tags: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)

    @property
    def progress_ratio(self) -> float:
        if self.target_value <= 0:
            return 1.0
        return min(1.0, self.current_value / self.target_value)


class QuestSummary(BaseModel, frozen=True):
    """Aggregate numbers for one day's quests."""

    total_quests: int = 0
    completed_quests: int = 0
    in_progress_quests: int = 0
    available_quests: int = 0
    total_xp_available: int = 0
    earned_xp: int = 0
    estimated_total_minutes: int = 0
    actual_spent_minutes: int = 0
    streak_days: int = 0
    is_streak_active: bool = False
    completion_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class TodayQuests(BaseModel):
    """The quest set of one student for one day."""

    model_config = ConfigDict(validate_assignment=True)

    student_id: str
    date: date
    main_quests: list[DailyQuest] = Field(default_factory=list)
    review_quests: list[DailyQuest] = Field(default_factory=list)
    bonus_quests: list[DailyQuest] = Field(default_factory=list)
    summary: QuestSummary = Field(default_factory=QuestSummary)
    daily_message: str = ""
    coach_tip: str = ""
    generated_at: datetime
    generated_by: GeneratedBy = GeneratedBy.SYSTEM

    @property
    def all_quests(self) -> list[DailyQuest]:
        return [*self.main_quests, *self.review_quests, *self.bonus_quests]


class QuestPreferences(BaseModel, frozen=True):
    max_quests: int | None = Field(default=None, ge=1)
    max_minutes: int | None = Field(default=None, ge=1)
    focus_subjects: list[Subject] | None = None
    exclude_types: list[QuestType] | None = None


class QuestGenerationRequest(BaseModel, frozen=True):
    """Request to build a student's quests for one day."""

    student_id: str
    date: date
    active_plans: list[str] = Field(default_factory=list)
    review_topics: list[str] = Field(default_factory=list)
    preferences: QuestPreferences | None = None


class QuestProgressUpdate(BaseModel, frozen=True):
    """Progress reported for one quest."""

    quest_id: str
    student_id: str
    progress_delta: int
    timestamp: datetime
    source: Literal["USER", "SYSTEM", "COACH"] = "USER"
    notes: str | None = None


class Badge(BaseModel, frozen=True):
    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    rarity: BadgeRarity
    earned_at: datetime | None = None
    criteria: str


class QuestCompletionResult(BaseModel, frozen=True):
    """Outcome of completing a quest."""

    quest: DailyQuest
    earned_xp: int
    earned_badge: Badge | None = None
    streak_bonus: int | None = None
    unlocked_quests: list[str] = Field(default_factory=list)
    next_recommended_quest: DailyQuest | None = None
    celebration_message: str


class QuestFilter(BaseModel, frozen=True):
    """Criteria for filter_quests; unset criteria match everything."""

    student_id: str
    date_from: date | None = None
    date_to: date | None = None
    status: list[QuestStatus] | None = None
    type: list[QuestType] | None = None
    subject: list[Subject] | None = None
    plan_id: str | None = None

    def matches(self, quest: DailyQuest) -> bool:
        if self.date_from is not None and quest.date < self.date_from:
            return False
        if self.date_to is not None and quest.date > self.date_to:
            return False
        if self.status and quest.status not in self.status:
            return False
        if self.type and quest.type not in self.type:
            return False
        if self.subject and quest.subject not in self.subject:
            return False
        if self.plan_id is not None and quest.plan_id != self.plan_id:
            return False
        return True


class SubjectQuestStats(BaseModel, frozen=True):
    total: int = 0
    completed: int = 0
    xp_earned: int = 0


class TypeQuestStats(BaseModel, frozen=True):
    total: int = 0
    completed: int = 0
    avg_time: float = 0.0


class QuestStats(BaseModel, frozen=True):
    """Quest statistics of one student over a period."""

    student_id: str
    period: StatsPeriod
    total_quests: int = 0
    completed_quests: int = 0
    completion_rate: float = 0.0
    total_xp_earned: int = 0
    badges_earned: int = 0
    longest_streak: int = 0
    current_streak: int = 0
    average_completion_time: float = 0.0
    most_active_hour: int = Field(default=0, ge=0, le=23)
    favorite_subject: Subject = Subject.GENERAL
    strongest_type: QuestType = QuestType.STUDY
    weakest_type: QuestType = QuestType.STUDY
    by_subject: dict[Subject, SubjectQuestStats] = Field(default_factory=dict)
    by_type: dict[QuestType, TypeQuestStats] = Field(default_factory=dict)
