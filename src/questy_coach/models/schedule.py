"""Schedule models for questy_coach.

These models describe delay analysis, delay notifications and the
rescheduling recommendations produced for a student.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from questy_coach.models.quest import DailyQuest

__all__ = [
    "ActionButton",
    "AutoRescheduleResult",
    "ButtonAction",
    "CarryOverAction",
    "CrisisLevel",
    "DelayAnalysis",
    "DelayNotification",
    "ExpiredQuest",
    "Feasibility",
    "IncompleteQuest",
    "MessageAction",
    "MessageActionType",
    "ModificationStrategy",
    "NotificationPriority",
    "NotificationType",
    "PlanSettings",
    "RescheduleOption",
    "RescheduleStrategy",
    "RescheduleSuggestion",
    "ScheduleChangeRequest",
    "ScheduleModificationResult",
    "StudentPattern",
    "SuggestedQuest",
    "SuggestionType",
]


class CrisisLevel(StrEnum):
    """Severity of a student's schedule delay, ordered NONE < CRISIS."""

    NONE = "NONE"
    WARNING = "WARNING"
    CONCERN = "CONCERN"
    CRISIS = "CRISIS"


class CarryOverAction(StrEnum):
    CARRY_OVER = "CARRY_OVER"
    COMBINE = "COMBINE"
    SKIP = "SKIP"
    REDUCE = "REDUCE"


class SuggestionType(StrEnum):
    CARRY_OVER = "CARRY_OVER"
    REDUCE_LOAD = "REDUCE_LOAD"
    EXTEND_PLAN = "EXTEND_PLAN"
    SKIP_TODAY = "SKIP_TODAY"


class NotificationType(StrEnum):
    REMINDER = "REMINDER"
    OVERDUE = "OVERDUE"
    CRISIS = "CRISIS"
    ENCOURAGEMENT = "ENCOURAGEMENT"


class NotificationPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ButtonAction(StrEnum):
    START_NOW = "START_NOW"
    RESCHEDULE = "RESCHEDULE"
    SKIP_TODAY = "SKIP_TODAY"
    TALK_TO_COACH = "TALK_TO_COACH"


class RescheduleStrategy(StrEnum):
    WEEKEND_SPILLOVER = "WEEKEND_SPILLOVER"
    STACK_NEXT_DAY = "STACK_NEXT_DAY"
    EXTEND_DEADLINE = "EXTEND_DEADLINE"
    REDUCE_LOAD = "REDUCE_LOAD"


class ModificationStrategy(StrEnum):
    COMPRESS = "COMPRESS"
    EXTEND = "EXTEND"
    SKIP = "SKIP"
    REDUCE_LOAD = "REDUCE_LOAD"


class Feasibility(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class MessageActionType(StrEnum):
    CUSTOM = "CUSTOM"
    RESCHEDULE_QUEST = "RESCHEDULE_QUEST"
    NAVIGATE = "NAVIGATE"


class ExpiredQuest(BaseModel, frozen=True):
    """A quest whose day has passed without completion."""

    quest: DailyQuest
    expired_at: datetime
    days_overdue: int = Field(ge=0)
    carry_over_suggestion: CarryOverAction


class SuggestedQuest(BaseModel, frozen=True):
    original_quest_id: str
    new_date: date
    reduced_target_value: int | None = None
    reason: str


class RescheduleSuggestion(BaseModel, frozen=True):
    type: SuggestionType
    message: str
    suggested_quests: list[SuggestedQuest] = Field(default_factory=list)
    estimated_minutes: int = 0


class DelayAnalysis(BaseModel, frozen=True):
    """Result of analyzing a student's overdue work.

    Attributes:
        student_id: Analyzed student
        analyzed_at: Analysis time
        expired_quests: Overdue quests with a carry-over suggestion each
        consecutive_missed_days: Days without any completion, counted back from today
        last_completed_date: Most recent completion, if any
        crisis_level: Severity derived from missed days and expired count
        reschedule_suggestion: What to do with the expired quests
    """

    student_id: str
    analyzed_at: datetime
    expired_quests: list[ExpiredQuest] = Field(default_factory=list)
    consecutive_missed_days: int = Field(default=0, ge=0)
    last_completed_date: datetime | None = None
    crisis_level: CrisisLevel = CrisisLevel.NONE
    reschedule_suggestion: RescheduleSuggestion | None = None


class ActionButton(BaseModel, frozen=True):
    label: str
    action: ButtonAction


class DelayNotification(BaseModel, frozen=True):
    """A pending delay notification for a student."""

    id: str
    student_id: str
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    created_at: datetime
    quest_ids: list[str] = Field(default_factory=list)
    action_buttons: list[ActionButton] = Field(default_factory=list)


class IncompleteQuest(BaseModel, frozen=True):
    """An unfinished quest handed to the auto-rescheduler."""

    quest_id: str
    plan_id: str
    plan_name: str
    unit_title: str
    range: str = ""
    day: int = 0
    original_date: date
    estimated_minutes: int = Field(default=0, ge=0)
    exclude_weekends: bool = False


class PlanSettings(BaseModel, frozen=True):
    plan_id: str
    plan_name: str
    exclude_weekends: bool = False
    total_days: int = Field(default=0, ge=0)
    remaining_days: int = 0
    target_end_date: date


class StudentPattern(BaseModel, frozen=True):
    """Recent study behavior used to pick a reschedule strategy."""

    preferred_study_days: list[str] = Field(default_factory=lambda: ["weekday"])
    average_quests_per_day: float = 0.0
    completion_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    weekend_availability: bool = False
    consecutive_missed_days: int = Field(default=0, ge=0)


class MessageAction(BaseModel, frozen=True):
    """A button attached to a coach message."""

    id: str
    type: MessageActionType
    label: str
    icon: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class AutoRescheduleResult(BaseModel, frozen=True):
    """Strategy chosen for one incomplete quest."""

    strategy: RescheduleStrategy
    original_quest: IncompleteQuest
    new_date: date
    is_weekend: bool
    stacked_count: int | None = None
    reasoning: str
    coach_message: str
    message_actions: list[MessageAction] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)


class ScheduleChangeRequest(BaseModel, frozen=True):
    """A student's request to pause studying for some days."""

    student_id: str
    skip_dates: list[date] | None = None
    skip_from_date: date | None = None
    skip_until_date: date | None = None
    keep_total_days: bool | None = None
    reason: str | None = None


class RescheduleOption(BaseModel, frozen=True):
    """One way of absorbing skipped days into a plan.

    Attributes:
        id: Deterministic option ID (strategy and plan)
        plan_id: Plan the option applies to
        plan_name: Display label of the option
        description: What the option does
        impact_summary: Effect on the target date or progress
        strategy: COMPRESS, EXTEND, SKIP or REDUCE_LOAD
        original_end_date: Plan target date before the change
        new_end_date: Plan target date after the change
        days_changed: Days the target date moves
        affected_quest_count: Quests touched by the option
        daily_load_change: Human-readable change in daily load
        load_factor: Multiplier applied to daily quest size
        skip_start: First skipped day
        skip_end: Last skipped day
        is_recommended: Whether the option is suggested
        feasibility: HIGH, MEDIUM or LOW
        warning_message: Caveat shown with the option
    """

    id: str
    plan_id: str
    plan_name: str
    description: str
    impact_summary: str
    strategy: ModificationStrategy
    original_end_date: date
    new_end_date: date
    days_changed: int = 0
    affected_quest_count: int = 0
    daily_load_change: str
    load_factor: float = 1.0
    skip_start: date
    skip_end: date
    is_recommended: bool = False
    feasibility: Feasibility = Feasibility.HIGH
    warning_message: str | None = None


class ScheduleModificationResult(BaseModel, frozen=True):
    success: bool
    student_id: str
    applied_option: RescheduleOption | None = None
    modified_quests: list[DailyQuest] = Field(default_factory=list)
    message: str
