"""Quest lifecycle tracking for questy_coach.

This module owns every student's daily quest sets and progress
(XP, streak, badges, completion history), and derives statistics.
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from questy_coach.config import QuestSettings
from questy_coach.domain.student_progress import StudentProgress
from questy_coach.logging import get_logger
from questy_coach.models.memory import Subject
from questy_coach.models.quest import (
    Badge,
    DailyQuest,
    GeneratedBy,
    QuestCompletionResult,
    QuestFilter,
    QuestProgressUpdate,
    QuestStats,
    QuestStatus,
    QuestType,
    StatsPeriod,
    SubjectQuestStats,
    TodayQuests,
    TypeQuestStats,
)
from questy_coach.services.quest_generator import summarize_quests
from questy_coach.utils import dates

__all__ = [
    "QuestTracker",
]

logger = get_logger(__name__)

PERIOD_DAYS: dict[StatsPeriod, int | None] = {
    StatsPeriod.DAY: 0,
    StatsPeriod.WEEK: 7,
    StatsPeriod.MONTH: 30,
    StatsPeriod.ALL: None,
}

_PROGRESSABLE = (QuestStatus.AVAILABLE, QuestStatus.IN_PROGRESS)


class QuestTracker:
    """Quest state owner for many students.

    Quest records are mutated in place. Each quest awards XP at most
    once: completion is refused for a quest that is already COMPLETED,
    and reaching the target through progress goes through the same
    completion path.

    Example:
        tracker = QuestTracker()
        tracker.save_today_quests(today)
        result = tracker.complete_quest("student-1", quest_id)
    """

    def __init__(self, settings: QuestSettings | None = None) -> None:
        self._settings = settings or QuestSettings()
        self._days: dict[str, dict[date, TodayQuests]] = {}
        self._progress: dict[str, StudentProgress] = {}

    # === QUEST SETS ===

    def save_today_quests(self, today: TodayQuests) -> None:
        """Store a day's quest set, replacing any set for the same day."""
        days = self._days.setdefault(today.student_id, {})
        days[today.date] = today
        self._refresh_summary(today)

        keep = self._settings.history_days
        if len(days) > keep:
            for stale in sorted(days)[: len(days) - keep]:
                del days[stale]

    def get_today_quests(self, student_id: str, day: date | None = None) -> TodayQuests | None:
        day = day or dates.now().date()
        return self._days.get(student_id, {}).get(day)

    def get_recent_quests(
        self,
        student_id: str,
        days: int,
        today: date | None = None,
    ) -> list[TodayQuests]:
        """Quest sets of the last `days` days before today, oldest first."""
        today = today or dates.now().date()
        start = today - timedelta(days=days)
        stored = self._days.get(student_id, {})
        return [stored[d] for d in sorted(stored) if start <= d < today]

    def replace_quests(
        self,
        student_id: str,
        quests: list[DailyQuest],
        now: datetime | None = None,
    ) -> int:
        """Write back modified quest copies.

        A quest whose date changed moves to the set of its new day
        (created if needed), keeping its main/review/bonus section.

        Returns:
            Number of quests replaced
        """
        now = now or dates.now()
        days = self._days.get(student_id)
        if not days:
            return 0

        replaced = 0
        touched: set[date] = set()
        for quest in quests:
            located = self._locate(student_id, quest.id)
            if located is None:
                continue
            old_day, section = located
            bucket = getattr(old_day, section)
            setattr(old_day, section, [q for q in bucket if q.id != quest.id])

            target = days.get(quest.date)
            if target is None:
                target = TodayQuests(
                    student_id=student_id,
                    date=quest.date,
                    generated_at=now,
                    generated_by=GeneratedBy.PLANNER,
                )
                days[quest.date] = target
            setattr(target, section, [*getattr(target, section), quest])
            touched.update({old_day.date, target.date})
            replaced += 1

        for day in touched:
            self._refresh_summary(days[day])
        logger.debug("quests_replaced", student_id=student_id, count=replaced)
        return replaced

    def filter_quests(self, quest_filter: QuestFilter) -> list[DailyQuest]:
        stored = self._days.get(quest_filter.student_id, {})
        return [
            quest
            for day in sorted(stored)
            for quest in stored[day].all_quests
            if quest_filter.matches(quest)
        ]

    # === PROGRESS AND COMPLETION ===

    def update_progress(
        self,
        update: QuestProgressUpdate,
        now: datetime | None = None,
    ) -> DailyQuest | None:
        """Add progress to a quest.

        The first progress moves AVAILABLE to IN_PROGRESS. Reaching the
        target completes the quest (and awards XP). Quests that are
        LOCKED or terminal are returned unchanged. An open quest past its
        deadline is moved to EXPIRED instead.

        Args:
            update: Quest, student and progress delta
            now: Update time (default: update.timestamp)

        Returns:
            The quest after the update, or None if not found or found past its deadline
        """
        now = now or update.timestamp
        located = self._locate(update.student_id, update.quest_id)
        if located is None:
            return None
        today, _ = located
        quest = self._find(today, update.quest_id)
        if quest is None or self._expire_if_overdue(today, quest, now):
            return None
        if quest.status not in _PROGRESSABLE:
            return quest

        quest.current_value = max(0, quest.current_value + update.progress_delta)
        if quest.status == QuestStatus.AVAILABLE:
            quest.status = QuestStatus.IN_PROGRESS
            quest.started_at = now

        if quest.current_value >= quest.target_value:
            self._complete(today, quest, now)
        else:
            self._refresh_summary(today)
        return quest

    def complete_quest(
        self,
        student_id: str,
        quest_id: str,
        now: datetime | None = None,
    ) -> QuestCompletionResult | None:
        """Complete a quest and award XP, streak and badges.

        Returns:
            QuestCompletionResult, or None if the quest is unknown, closed
            (COMPLETED, EXPIRED, SKIPPED) or past its deadline
        """
        now = now or dates.now()
        located = self._locate(student_id, quest_id)
        if located is None:
            return None
        today, _ = located
        quest = self._find(today, quest_id)
        if quest is None or quest.status.is_terminal:
            return None
        if self._expire_if_overdue(today, quest, now):
            return None
        return self._complete(today, quest, now)

    def skip_quest(
        self,
        student_id: str,
        quest_id: str,
    ) -> DailyQuest | None:
        """Mark a quest SKIPPED; completed or expired quests stay as they are."""
        located = self._locate(student_id, quest_id)
        if located is None:
            return None
        today, _ = located
        quest = self._find(today, quest_id)
        if quest is None or quest.status.is_terminal:
            return None
        quest.status = QuestStatus.SKIPPED
        self._refresh_summary(today)
        return quest

    def expire_overdue(self, student_id: str, now: datetime | None = None) -> list[DailyQuest]:
        """Move open quests past their deadline to EXPIRED."""
        now = now or dates.now()
        expired: list[DailyQuest] = []
        for today in self._days.get(student_id, {}).values():
            changed = False
            for quest in today.all_quests:
                if quest.status in _PROGRESSABLE and quest.expires_at < now:
                    quest.status = QuestStatus.EXPIRED
                    expired.append(quest)
                    changed = True
            if changed:
                self._refresh_summary(today)
        if expired:
            logger.info("quests_expired", student_id=student_id, count=len(expired))
        return expired

    # === PROGRESS QUERIES ===

    def get_streak(self, student_id: str, today: date | None = None) -> int:
        progress = self._progress.get(student_id)
        if progress is None:
            return 0
        return progress.current_streak(today or dates.now().date())

    def get_xp(self, student_id: str) -> int:
        progress = self._progress.get(student_id)
        return progress.xp if progress else 0

    def get_badges(self, student_id: str) -> list[Badge]:
        progress = self._progress.get(student_id)
        return list(progress.badges) if progress else []

    def get_stats(
        self,
        student_id: str,
        period: StatsPeriod = StatsPeriod.ALL,
        now: datetime | None = None,
    ) -> QuestStats:
        """Quest statistics of a student over a period.

        Args:
            student_id: Student
            period: DAY, WEEK (7 days), MONTH (30 days) or ALL
            now: Reference time (default: now)

        Returns:
            QuestStats over every stored quest in the period
        """
        today = (now or dates.now()).date()
        window = PERIOD_DAYS[period]
        quests = [
            q
            for day, quest_set in self._days.get(student_id, {}).items()
            if window is None or today - timedelta(days=window) <= day <= today
            for q in quest_set.all_quests
        ]
        completed = [q for q in quests if q.status == QuestStatus.COMPLETED]
        progress = self._progress.get(student_id) or StudentProgress(student_id)

        by_subject: dict[Subject, SubjectQuestStats] = {}
        for subject in dict.fromkeys(q.subject for q in quests):
            in_subject = [q for q in quests if q.subject == subject]
            done = [q for q in in_subject if q.status == QuestStatus.COMPLETED]
            by_subject[subject] = SubjectQuestStats(
                total=len(in_subject),
                completed=len(done),
                xp_earned=sum(_earned_xp(q) for q in done),
            )

        by_type: dict[QuestType, TypeQuestStats] = {}
        for quest_type in dict.fromkeys(q.type for q in quests):
            of_type = [q for q in quests if q.type == quest_type]
            done = [q for q in of_type if q.status == QuestStatus.COMPLETED]
            by_type[quest_type] = TypeQuestStats(
                total=len(of_type),
                completed=len(done),
                avg_time=_average_minutes(done),
            )

        hours = Counter(q.completed_at.hour for q in completed if q.completed_at)
        subjects = Counter(q.subject for q in completed)
        rates = {t: s.completed / s.total for t, s in by_type.items() if s.total}

        return QuestStats(
            student_id=student_id,
            period=period,
            total_quests=len(quests),
            completed_quests=len(completed),
            completion_rate=len(completed) / len(quests) if quests else 0.0,
            total_xp_earned=sum(_earned_xp(q) for q in completed),
            badges_earned=len(progress.badges),
            longest_streak=progress.longest_streak,
            current_streak=progress.current_streak(today),
            average_completion_time=_average_minutes(completed),
            most_active_hour=hours.most_common(1)[0][0] if hours else 0,
            favorite_subject=subjects.most_common(1)[0][0] if subjects else Subject.GENERAL,
            strongest_type=max(rates, key=rates.__getitem__) if rates else QuestType.STUDY,
            weakest_type=min(rates, key=rates.__getitem__) if rates else QuestType.STUDY,
            by_subject=by_subject,
            by_type=by_type,
        )

    # === PERSISTENCE ===

    def export_student(self, student_id: str) -> dict[str, Any]:
        """Serialize a student's quest sets and progress for the state store."""
        progress = self._progress.get(student_id) or StudentProgress(student_id)
        days = self._days.get(student_id, {})
        return {
            "progress": progress.to_dict(),
            "days": [days[d].model_dump(mode="json") for d in sorted(days)],
        }

    def import_student(self, student_id: str, data: dict[str, Any]) -> None:
        """Replace a student's state with a previously exported dict."""
        try:
            progress = StudentProgress.from_dict(data.get("progress") or {"student_id": student_id})
            days = [TodayQuests.model_validate(d) for d in data.get("days", [])]
        except (KeyError, ValueError, ValidationError) as e:
            logger.warning("quest_state_invalid", student_id=student_id, error=str(e))
            return
        self._progress[student_id] = progress
        self._days[student_id] = {d.date: d for d in days}

    def delete_student(self, student_id: str) -> None:
        self._days.pop(student_id, None)
        self._progress.pop(student_id, None)

    # === INTERNALS ===

    def _progress_for(self, student_id: str) -> StudentProgress:
        progress = self._progress.get(student_id)
        if progress is None:
            progress = StudentProgress(student_id)
            self._progress[student_id] = progress
        return progress

    def _locate(self, student_id: str, quest_id: str) -> tuple[TodayQuests, str] | None:
        """Find the day set and section ("main_quests", ...) holding a quest, newest day first."""
        days = self._days.get(student_id, {})
        for day in sorted(days, reverse=True):
            today = days[day]
            for section in ("main_quests", "review_quests", "bonus_quests"):
                if any(q.id == quest_id for q in getattr(today, section)):
                    return today, section
        return None

    @staticmethod
    def _find(today: TodayQuests, quest_id: str) -> DailyQuest | None:
        return next((q for q in today.all_quests if q.id == quest_id), None)

    def _expire_if_overdue(self, today: TodayQuests, quest: DailyQuest, now: datetime) -> bool:
        if quest.status not in _PROGRESSABLE or quest.expires_at >= now:
            return False
        quest.status = QuestStatus.EXPIRED
        self._refresh_summary(today)
        logger.info("late_quest_refused", student_id=quest.student_id, quest_id=quest.id)
        return True

    def _complete(
        self,
        today: TodayQuests,
        quest: DailyQuest,
        now: datetime,
    ) -> QuestCompletionResult:
        quest.status = QuestStatus.COMPLETED
        quest.completed_at = now
        quest.current_value = quest.target_value

        progress = self._progress_for(quest.student_id)
        earned = _earned_xp(quest)
        progress.add_xp(earned)
        progress.register_activity(now.date())
        badge = progress.award_badges(now)

        unlocked = self._unlock(today)
        progress.record_completion(quest)
        progress.prune_history(now.date() - timedelta(days=self._settings.history_days))
        self._refresh_summary(today)

        next_quest = next(
            (q for q in today.all_quests if q.status == QuestStatus.AVAILABLE),
            None,
        )
        logger.info(
            "quest_completed",
            student_id=quest.student_id,
            quest_id=quest.id,
            earned_xp=earned,
            streak=progress.streak,
        )
        return QuestCompletionResult(
            quest=quest.model_copy(deep=True),
            earned_xp=earned,
            earned_badge=badge,
            streak_bonus=quest.streak_bonus,
            unlocked_quests=[q.id for q in unlocked],
            next_recommended_quest=next_quest.model_copy(deep=True) if next_quest else None,
            celebration_message=_celebration_message(quest, badge),
        )

    @staticmethod
    def _unlock(today: TodayQuests) -> list[DailyQuest]:
        completed = {q.id for q in today.all_quests if q.status == QuestStatus.COMPLETED}
        unlocked = []
        for quest in today.all_quests:
            if (
                quest.status == QuestStatus.LOCKED
                and quest.prerequisites
                and all(p in completed for p in quest.prerequisites)
            ):
                quest.status = QuestStatus.AVAILABLE
                unlocked.append(quest)
        return unlocked

    def _refresh_summary(self, today: TodayQuests) -> None:
        progress = self._progress.get(today.student_id)
        streak = progress.current_streak(today.date) if progress else 0
        today.summary = summarize_quests(today.all_quests, streak, streak > 0)


def _earned_xp(quest: DailyQuest) -> int:
    return quest.xp_reward + (quest.streak_bonus or 0)


def _average_minutes(quests: list[DailyQuest]) -> float:
    durations = [
        (q.completed_at - q.started_at).total_seconds() / 60
        for q in quests
        if q.started_at is not None and q.completed_at is not None
    ]
    if not durations:
        return 0.0
    return float(int(sum(durations) / len(durations)))


def _celebration_message(quest: DailyQuest, badge: Badge | None) -> str:
    message = f'🎉 "{quest.title}" complete! +{quest.xp_reward} XP'
    if quest.streak_bonus:
        message += f" (+{quest.streak_bonus} streak bonus!)"
    if badge is not None:
        message += f"\n\n🏆 New badge: {badge.icon} {badge.name}"
    return message
