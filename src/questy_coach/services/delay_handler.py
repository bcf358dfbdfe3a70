"""Schedule delay detection for questy_coach.

This module finds overdue quests, counts consecutive days without any
completion, classifies the crisis level and suggests how to carry the
overdue work forward. It only reads quest state; carried-over quests
are returned as new records for the caller to save.
"""

import math
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from questy_coach.config import DelaySettings
from questy_coach.logging import get_logger
from questy_coach.models.quest import DailyQuest, QuestStatus, QuestType, TodayQuests
from questy_coach.models.schedule import (
    ActionButton,
    ButtonAction,
    CarryOverAction,
    CrisisLevel,
    DelayAnalysis,
    DelayNotification,
    ExpiredQuest,
    NotificationPriority,
    NotificationType,
    RescheduleSuggestion,
    SuggestedQuest,
    SuggestionType,
)
from questy_coach.utils import dates
from questy_coach.utils.hashing import generate_notification_id

__all__ = [
    "CARRIED_OVER_TAG",
    "ScheduleDelayHandler",
    "determine_crisis_level",
]

logger = get_logger(__name__)

CARRIED_OVER_TAG = "CARRIED_OVER"

SKIP_AFTER_DAYS = 3
LONG_QUEST_MINUTES = 45
CRISIS_MINUTES = 10
CRISIS_REDUCTION = 0.5
CONCERN_REDUCTION = 0.7
CONCERN_MAX_QUESTS = 2

_CLOSED = (QuestStatus.COMPLETED, QuestStatus.EXPIRED, QuestStatus.SKIPPED)

NOTIFICATION_KIND: dict[CrisisLevel, tuple[NotificationType, NotificationPriority]] = {
    CrisisLevel.CRISIS: (NotificationType.CRISIS, NotificationPriority.URGENT),
    CrisisLevel.CONCERN: (NotificationType.OVERDUE, NotificationPriority.HIGH),
    CrisisLevel.WARNING: (NotificationType.REMINDER, NotificationPriority.MEDIUM),
}


def determine_crisis_level(missed_days: int, expired_count: int) -> CrisisLevel:
    """Classify a delay; monotonic in both arguments."""
    if missed_days >= 3:
        return CrisisLevel.CRISIS
    if missed_days >= 2 or expired_count >= 3:
        return CrisisLevel.CONCERN
    if missed_days >= 1 or expired_count >= 1:
        return CrisisLevel.WARNING
    return CrisisLevel.NONE


class ScheduleDelayHandler:
    """Delay analysis and delay notifications for many students.

    Keeps each student's recent completion times (used when no
    external completion history is given) and pending notifications.

    Example:
        handler = ScheduleDelayHandler()
        analysis = handler.analyze_delays("student-1", today, past_days)
        notification = handler.generate_delay_notification("student-1", analysis)
    """

    def __init__(self, settings: DelaySettings | None = None) -> None:
        self._settings = settings or DelaySettings()
        self._completions: dict[str, list[datetime]] = {}
        self._notifications: dict[str, list[DelayNotification]] = {}

    def analyze_delays(
        self,
        student_id: str,
        today_quests: TodayQuests | None,
        past_quests: list[TodayQuests] | tuple[TodayQuests, ...] = (),
        completion_dates: list[datetime] | None = None,
        now: datetime | None = None,
    ) -> DelayAnalysis:
        """Analyze a student's overdue work.

        Args:
            student_id: Student to analyze
            today_quests: Today's quest set, if any
            past_quests: Quest sets of previous days
            completion_dates: Completion times (default: recorded history)
            now: Analysis time (default: now)

        Returns:
            DelayAnalysis with expired quests, missed days, crisis level and suggestion
        """
        now = now or dates.now()
        completions = (
            completion_dates
            if completion_dates is not None
            else self._completions.get(student_id, [])
        )

        expired: dict[str, ExpiredQuest] = {}
        if today_quests is not None:
            for quest in today_quests.all_quests:
                if self.is_expired(quest, now):
                    expired[quest.id] = self._expired_quest(quest, now)
        for day in past_quests:
            for quest in [*day.main_quests, *day.review_quests]:
                if quest.status not in _CLOSED and quest.id not in expired:
                    expired[quest.id] = self._expired_quest(quest, now)
        expired_quests = list(expired.values())

        known_days = [d.date for d in past_quests]
        if today_quests is not None:
            known_days.append(today_quests.date)
        missed = self.consecutive_missed_days(completions, known_days, now.date())
        level = determine_crisis_level(missed, len(expired_quests))

        if level in (CrisisLevel.CONCERN, CrisisLevel.CRISIS):
            logger.info(
                "schedule_delay_detected",
                student_id=student_id,
                crisis_level=str(level),
                missed_days=missed,
                expired=len(expired_quests),
            )

        return DelayAnalysis(
            student_id=student_id,
            analyzed_at=now,
            expired_quests=expired_quests,
            consecutive_missed_days=missed,
            last_completed_date=max(completions) if completions else None,
            crisis_level=level,
            reschedule_suggestion=self.suggest_reschedule(expired_quests, level, now.date()),
        )

    @staticmethod
    def is_expired(quest: DailyQuest, now: datetime) -> bool:
        if quest.status in _CLOSED:
            return False
        return quest.expires_at < now or dates.end_of_day(quest.date) < now

    def consecutive_missed_days(
        self,
        completions: list[datetime],
        known_days: list[date],
        today: date,
    ) -> int:
        """Days without any completion, walking back from today.

        The walk covers at most lookback_days and never goes past the
        earliest day the student is known to have been active.
        """
        completed_days = {c.date() for c in completions}
        earliest_known = [*known_days, *completed_days]
        if not earliest_known:
            return 0
        earliest = min(earliest_known)

        missed = 0
        day = today
        for _ in range(self._settings.lookback_days):
            if day < earliest or day in completed_days:
                break
            missed += 1
            day -= timedelta(days=1)
        return missed

    def suggest_reschedule(
        self,
        expired_quests: list[ExpiredQuest],
        level: CrisisLevel,
        today: date,
    ) -> RescheduleSuggestion | None:
        if not expired_quests:
            return None
        tomorrow = today + timedelta(days=1)

        if level == CrisisLevel.CRISIS:
            cheapest = min(expired_quests, key=lambda e: e.quest.estimated_minutes)
            return RescheduleSuggestion(
                type=SuggestionType.REDUCE_LOAD,
                message="Busy lately? Let's start small again 😢",
                suggested_quests=[
                    SuggestedQuest(
                        original_quest_id=cheapest.quest.id,
                        new_date=tomorrow,
                        reduced_target_value=math.floor(
                            cheapest.quest.target_value * CRISIS_REDUCTION
                        ),
                        reason="Just half! 10 minutes is enough",
                    )
                ],
                estimated_minutes=CRISIS_MINUTES,
            )

        if level == CrisisLevel.CONCERN:
            carried = [
                e for e in expired_quests if e.carry_over_suggestion != CarryOverAction.SKIP
            ][:CONCERN_MAX_QUESTS]
            suggested = []
            for entry in carried:
                reduce = entry.carry_over_suggestion == CarryOverAction.REDUCE
                suggested.append(
                    SuggestedQuest(
                        original_quest_id=entry.quest.id,
                        new_date=tomorrow,
                        reduced_target_value=(
                            math.floor(entry.quest.target_value * CONCERN_REDUCTION)
                            if reduce
                            else entry.quest.target_value
                        ),
                        reason="Slightly reduced" if reduce else "Carried over as is",
                    )
                )
            return RescheduleSuggestion(
                type=SuggestionType.CARRY_OVER,
                message="A few quests piled up, want to do them tomorrow together?",
                suggested_quests=suggested,
                estimated_minutes=sum(e.quest.estimated_minutes for e in carried),
            )

        return RescheduleSuggestion(
            type=SuggestionType.CARRY_OVER,
            message="Can you do yesterday's quests today?",
            suggested_quests=[
                SuggestedQuest(
                    original_quest_id=e.quest.id,
                    new_date=tomorrow,
                    reason="Carried over to tomorrow",
                )
                for e in expired_quests
            ],
            estimated_minutes=sum(e.quest.estimated_minutes for e in expired_quests),
        )

    @staticmethod
    def mark_as_expired(quest: DailyQuest) -> DailyQuest:
        return quest.model_copy(update={"status": QuestStatus.EXPIRED}, deep=True)

    @staticmethod
    def create_carried_over_quest(
        original: DailyQuest,
        new_date: date,
        reduced_target: int | None = None,
    ) -> DailyQuest:
        """Copy an overdue quest onto a new day with its progress reset."""
        target = reduced_target if reduced_target is not None else original.target_value
        return original.model_copy(
            update={
                "id": f"{original.id}-carryover-{new_date.isoformat()}",
                "date": new_date,
                "status": QuestStatus.AVAILABLE,
                "target_value": target,
                "current_value": 0,
                "started_at": None,
                "completed_at": None,
                "expires_at": dates.end_of_day(new_date),
                "tags": [*original.tags, CARRIED_OVER_TAG],
            },
            deep=True,
        )

    def record_completion(self, student_id: str, at: datetime | None = None) -> None:
        """Record a completion; history older than completion_history_days is dropped."""
        at = at or dates.now()
        cutoff = at - timedelta(days=self._settings.completion_history_days)
        history = [c for c in self._completions.get(student_id, []) if c > cutoff]
        history.append(at)
        self._completions[student_id] = history

    def get_completion_dates(self, student_id: str) -> list[datetime]:
        return list(self._completions.get(student_id, []))

    # === NOTIFICATIONS ===

    def generate_delay_notification(
        self,
        student_id: str,
        analysis: DelayAnalysis,
    ) -> DelayNotification | None:
        """Create and queue a notification for a delay; None when there is no delay."""
        if analysis.crisis_level == CrisisLevel.NONE:
            return None

        created_at = analysis.analyzed_at
        kind, priority = NOTIFICATION_KIND[analysis.crisis_level]
        title, message = self._notification_text(analysis)
        notification = DelayNotification(
            id=generate_notification_id(
                student_id,
                analysis.crisis_level,
                int(created_at.timestamp() * 1000),
            ),
            student_id=student_id,
            type=kind,
            title=title,
            message=message,
            priority=priority,
            created_at=created_at,
            quest_ids=[e.quest.id for e in analysis.expired_quests],
            action_buttons=self._action_buttons(analysis.crisis_level),
        )
        self._notifications.setdefault(student_id, []).append(notification)
        return notification

    def get_pending_notifications(self, student_id: str) -> list[DelayNotification]:
        return list(self._notifications.get(student_id, []))

    def clear_notifications(self, student_id: str) -> None:
        self._notifications.pop(student_id, None)

    def dismiss_notification(self, student_id: str, notification_id: str) -> bool:
        pending = self._notifications.get(student_id, [])
        remaining = [n for n in pending if n.id != notification_id]
        if len(remaining) == len(pending):
            return False
        if remaining:
            self._notifications[student_id] = remaining
        else:
            del self._notifications[student_id]
        return True

    @staticmethod
    def _notification_text(analysis: DelayAnalysis) -> tuple[str, str]:
        suggestion = analysis.reschedule_suggestion
        if analysis.crisis_level == CrisisLevel.CRISIS:
            minutes = (suggestion.estimated_minutes if suggestion else 0) or CRISIS_MINUTES
            return (
                f"{analysis.consecutive_missed_days} days off 💙",
                "Busy lately... that's okay 😢\n"
                f"How about just {minutes} minutes? It's fine if not.",
            )
        if analysis.crisis_level == CrisisLevel.CONCERN:
            follow_up = suggestion.message if suggestion else "want to do them together?"
            return (
                "You have overdue quests 📚",
                f"{len(analysis.expired_quests)} quests piled up. {follow_up}",
            )
        return (
            "Something left from yesterday!",
            suggestion.message if suggestion else "How about 30 minutes today?",
        )

    @staticmethod
    def _action_buttons(level: CrisisLevel) -> list[ActionButton]:
        if level == CrisisLevel.CRISIS:
            return [
                ActionButton(label="Just 10 minutes", action=ButtonAction.START_NOW),
                ActionButton(label="Talk to coach", action=ButtonAction.TALK_TO_COACH),
            ]
        return [
            ActionButton(label="Start now!", action=ButtonAction.START_NOW),
            ActionButton(label="I'll do it tomorrow", action=ButtonAction.RESCHEDULE),
            ActionButton(label="Rest today", action=ButtonAction.SKIP_TODAY),
        ]

    # === PERSISTENCE ===

    def export_student(self, student_id: str) -> dict[str, Any]:
        return {
            "completions": [c.isoformat() for c in self._completions.get(student_id, [])],
            "notifications": [
                n.model_dump(mode="json") for n in self._notifications.get(student_id, [])
            ],
        }

    def import_student(self, student_id: str, data: dict[str, Any]) -> None:
        try:
            completions = [datetime.fromisoformat(c) for c in data.get("completions", [])]
            notifications = [
                DelayNotification.model_validate(n) for n in data.get("notifications", [])
            ]
        except (ValueError, ValidationError) as e:
            logger.warning("delay_state_invalid", student_id=student_id, error=str(e))
            return
        self._completions[student_id] = completions
        if notifications:
            self._notifications[student_id] = notifications
        else:
            self._notifications.pop(student_id, None)

    def delete_student(self, student_id: str) -> None:
        self._completions.pop(student_id, None)
        self._notifications.pop(student_id, None)

    def _expired_quest(self, quest: DailyQuest, now: datetime) -> ExpiredQuest:
        overdue = max(0, dates.days_between(dates.start_of_day(quest.date), now))
        return ExpiredQuest(
            quest=quest.model_copy(deep=True),
            expired_at=quest.expires_at,
            days_overdue=overdue,
            carry_over_suggestion=self.carry_over_action(quest, overdue),
        )

    @staticmethod
    def carry_over_action(quest: DailyQuest, days_overdue: int) -> CarryOverAction:
        if days_overdue >= SKIP_AFTER_DAYS:
            return CarryOverAction.SKIP
        if quest.type == QuestType.REVIEW:
            return CarryOverAction.COMBINE
        if quest.estimated_minutes > LONG_QUEST_MINUTES:
            return CarryOverAction.REDUCE
        return CarryOverAction.CARRY_OVER
