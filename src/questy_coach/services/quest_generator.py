"""Daily quest generation for questy_coach.

This module builds a student's quests for one day from their active
study plans, the topics due for spaced-repetition review and their
current streak, and writes the daily message and coach tip.
"""

import asyncio
import math
from datetime import date, datetime

from questy_coach.config import QuestSettings
from questy_coach.interfaces.llm import LLMInterface
from questy_coach.logging import get_logger
from questy_coach.models.mastery import TopicMastery
from questy_coach.models.memory import Subject
from questy_coach.models.plan import StudyPlan, StudySession
from questy_coach.models.quest import (
    XP_BY_DIFFICULTY,
    DailyQuest,
    GeneratedBy,
    QuestDifficulty,
    QuestGenerationRequest,
    QuestStatus,
    QuestSummary,
    QuestType,
    TodayQuests,
)
from questy_coach.utils import dates

__all__ = [
    "COACH_TIPS",
    "QuestGenerator",
    "mastery_difficulty",
    "progress_difficulty",
    "summarize_quests",
]

logger = get_logger(__name__)

MAIN_SHARE = 0.6
REVIEW_SHARE = 0.3
BONUS_SHARE = 0.1

REVIEW_MINUTES = 15
STREAK_QUEST_MIN_DAYS = 3
STREAK_QUEST_HARD_DAYS = 7
URGENT_PLAN_DAYS = 7
MANY_REVIEWS = 5
FALLBACK_MINUTES = 15

COACH_TIPS = [
    "💡 Tip: Try the Pomodoro technique: 25 minutes of focus, then a 5-minute break!",
    "💡 Tip: Do hard quests in the morning and easy ones in the evening.",
    "💡 Tip: Just checking off finished quests gives you a sense of achievement!",
    "💡 Tip: A quick stretch before studying helps you focus.",
]
REVIEW_TIP = "💡 Tip: Finish your review quests first today. It's the best time to lock in memories!"

PERSONALIZE_SYSTEM_PROMPT = (
    "You are a warm, encouraging study coach for a middle or high school student. "
    "Rewrite the given daily message in at most two short sentences. "
    "Keep the facts (streak, number of quests) and reply with the message only."
)


def summarize_quests(
    quests: list[DailyQuest],
    streak_days: int,
    is_streak_active: bool | None = None,
) -> QuestSummary:
    """Aggregate numbers for one day's quests.

    Args:
        quests: All quests of the day
        streak_days: Current streak
        is_streak_active: Streak liveness (default: streak_days > 0)

    Returns:
        QuestSummary
    """
    completed = [q for q in quests if q.status == QuestStatus.COMPLETED]
    return QuestSummary(
        total_quests=len(quests),
        completed_quests=len(completed),
        in_progress_quests=sum(1 for q in quests if q.status == QuestStatus.IN_PROGRESS),
        available_quests=sum(1 for q in quests if q.status == QuestStatus.AVAILABLE),
        total_xp_available=sum(q.xp_reward for q in quests),
        earned_xp=sum(q.xp_reward + (q.streak_bonus or 0) for q in completed),
        estimated_total_minutes=sum(q.estimated_minutes for q in quests),
        actual_spent_minutes=sum(q.current_value for q in quests if q.unit == "min"),
        streak_days=streak_days,
        is_streak_active=streak_days > 0 if is_streak_active is None else is_streak_active,
        completion_rate=len(completed) / len(quests) if quests else 0.0,
    )


class QuestGenerator:
    """Builds TodayQuests from plans, due reviews and the streak.

    The quest budget (max quests and max minutes) is split into 60%
    main, 30% review and 10% bonus quests, each share rounded up.
    With an LLM configured and personalization enabled, the daily
    message is rewritten by the model; any failure keeps the template.
    Generation never raises: a template fallback set is returned instead.

    Example:
        generator = QuestGenerator()
        today = await generator.generate_today_quests(request, plans, due_topics, streak)
    """

    def __init__(
        self,
        settings: QuestSettings | None = None,
        llm: LLMInterface | None = None,
    ) -> None:
        """Initialize generator.

        Args:
            settings: Budgets, review priority and personalization flags
            llm: Optional LLM for daily message personalization
        """
        self._settings = settings or QuestSettings()
        self._llm = llm

    async def generate_today_quests(
        self,
        request: QuestGenerationRequest,
        active_plans: list[StudyPlan],
        review_due_topics: list[TopicMastery],
        current_streak: int,
        now: datetime | None = None,
        student_name: str | None = None,
    ) -> TodayQuests:
        """Generate a student's quests for the requested day.

        Args:
            request: Student, day and optional preferences
            active_plans: The student's active plans
            review_due_topics: Topics due for review
            current_streak: Current streak in days
            now: Generation time (default: now)
            student_name: Name used in the daily message

        Returns:
            TodayQuests (generated_by FALLBACK if building the set failed)
        """
        now = now or dates.now()
        try:
            today = self.build(
                request, active_plans, review_due_topics, current_streak, now, student_name
            )
        except Exception as e:
            logger.warning(
                "quest_generation_failed",
                student_id=request.student_id,
                error=str(e),
            )
            return self.fallback_quests(request, current_streak, now)

        if self._llm is not None and self._settings.personalize_messages:
            today.daily_message = await self.personalize_message(today, current_streak)
            today.generated_by = GeneratedBy.COACH

        logger.info(
            "quests_generated",
            student_id=request.student_id,
            date=request.date.isoformat(),
            main=len(today.main_quests),
            review=len(today.review_quests),
            bonus=len(today.bonus_quests),
        )
        return today

    def build(
        self,
        request: QuestGenerationRequest,
        active_plans: list[StudyPlan],
        review_due_topics: list[TopicMastery],
        current_streak: int,
        now: datetime,
        student_name: str | None = None,
    ) -> TodayQuests:
        """Build the quest set synchronously (no LLM involvement)."""
        preferences = request.preferences
        max_quests = (preferences.max_quests if preferences else None) or self._settings.max_quests
        max_minutes = (
            preferences.max_minutes if preferences else None
        ) or self._settings.max_minutes
        excluded = set(preferences.exclude_types or []) if preferences else set()
        focus = preferences.focus_subjects if preferences else None

        plans = active_plans
        if request.active_plans:
            plans = [p for p in active_plans if p.id in request.active_plans]
        topics = review_due_topics
        if request.review_topics:
            topics = [t for t in review_due_topics if t.topic_id in request.review_topics]

        main_quests: list[DailyQuest] = []
        if QuestType.STUDY not in excluded:
            main_quests = self.generate_main_quests(
                request.student_id,
                request.date,
                plans,
                max_quests=math.ceil(max_quests * MAIN_SHARE),
                max_minutes=math.ceil(max_minutes * MAIN_SHARE),
                focus_subjects=focus,
            )
        review_quests: list[DailyQuest] = []
        if QuestType.REVIEW not in excluded:
            review_quests = self.generate_review_quests(
                request.student_id,
                request.date,
                topics,
                max_quests=math.ceil(max_quests * REVIEW_SHARE),
                now=now,
            )
        bonus_quests = self.generate_bonus_quests(
            request.student_id,
            request.date,
            current_streak,
            excluded,
        )

        summary = summarize_quests([*main_quests, *review_quests, *bonus_quests], current_streak)
        return TodayQuests(
            student_id=request.student_id,
            date=request.date,
            main_quests=main_quests,
            review_quests=review_quests,
            bonus_quests=bonus_quests,
            summary=summary,
            daily_message=self.daily_message(current_streak, summary, now, student_name),
            coach_tip=self.coach_tip(plans, topics, request.date, now),
            generated_at=now,
            generated_by=GeneratedBy.SYSTEM,
        )

    def generate_main_quests(
        self,
        student_id: str,
        day: date,
        plans: list[StudyPlan],
        max_quests: int,
        max_minutes: int,
        focus_subjects: list[Subject] | None = None,
    ) -> list[DailyQuest]:
        """One STUDY quest per plan's next session, nearest deadline first.

        Sessions that do not fit the remaining minutes are skipped and
        the scan continues with the next plan.
        """
        pending: list[tuple[StudyPlan, StudySession]] = []
        for plan in plans:
            if focus_subjects and plan.subject not in focus_subjects:
                continue
            session = plan.first_pending_session()
            if session is not None:
                pending.append((plan, session))
        pending.sort(key=lambda item: item[0].target_end_date)

        quests: list[DailyQuest] = []
        total_minutes = 0
        for plan, session in pending:
            if len(quests) >= max_quests:
                break
            if total_minutes + session.estimated_minutes > max_minutes:
                continue
            quests.append(self._study_quest(student_id, day, plan, session, len(quests) + 1))
            total_minutes += session.estimated_minutes
        return quests

    def generate_review_quests(
        self,
        student_id: str,
        day: date,
        topics: list[TopicMastery],
        max_quests: int,
        now: datetime,
    ) -> list[DailyQuest]:
        # Overdue first, then weakest
        ordered = sorted(
            topics,
            key=lambda t: (not t.next_review_date < now, t.mastery_score),
        )
        quests: list[DailyQuest] = []
        for topic in ordered[:max_quests]:
            difficulty = mastery_difficulty(topic.mastery_score)
            quests.append(
                DailyQuest(
                    id=f"review-{student_id}-{day.isoformat()}-{len(quests)}",
                    student_id=student_id,
                    date=day,
                    type=QuestType.REVIEW,
                    title=f"📚 Review: {topic.topic_id}",
                    description="Review what you learned before. Reinforced memories last longer!",
                    subject=topic.subject,
                    topic_id=topic.topic_id,
                    target_value=1,
                    unit="session",
                    difficulty=difficulty,
                    priority=self._settings.review_quest_priority,
                    xp_reward=XP_BY_DIFFICULTY[difficulty],
                    estimated_minutes=REVIEW_MINUTES,
                    expires_at=dates.end_of_day(day),
                    tags=["review", "spaced-repetition"],
                )
            )
        return quests

    def generate_bonus_quests(
        self,
        student_id: str,
        day: date,
        current_streak: int,
        excluded: set[QuestType],
    ) -> list[DailyQuest]:
        if current_streak < STREAK_QUEST_MIN_DAYS or QuestType.STREAK in excluded:
            return []
        next_streak = current_streak + 1
        return [
            DailyQuest(
                id=f"streak-{student_id}-{day.isoformat()}",
                student_id=student_id,
                date=day,
                type=QuestType.STREAK,
                title=f"🔥 {next_streak}-day streak challenge!",
                description=(
                    f"Finish today's study to reach a {next_streak}-day streak and earn bonus XP."
                ),
                subject=Subject.GENERAL,
                target_value=1,
                unit="day",
                difficulty=(
                    QuestDifficulty.HARD
                    if current_streak >= STREAK_QUEST_HARD_DAYS
                    else QuestDifficulty.MEDIUM
                ),
                priority=3,
                xp_reward=math.floor(current_streak * 10 * self._settings.streak_bonus_multiplier),
                streak_bonus=math.floor(current_streak * 5),
                estimated_minutes=0,
                expires_at=dates.end_of_day(day),
                tags=["streak", "bonus"],
            )
        ]

    def daily_message(
        self,
        streak: int,
        summary: QuestSummary,
        now: datetime,
        student_name: str | None = None,
    ) -> str:
        if now.hour < 12:
            greeting = "Good morning"
        elif now.hour < 18:
            greeting = "Good afternoon"
        else:
            greeting = "Good evening"
        hello = f"{greeting}, {student_name}" if student_name else greeting

        if streak >= 7:
            return f"🎉 {hello}! You're on a {streak}-day streak! Amazing! Let's keep going today! 💪"
        if streak >= 3:
            return f"🔥 {hello}! Day {streak} of your streak! Keep the momentum!"
        if summary.total_quests > 0:
            return (
                f"{hello}! {summary.total_quests} quests are waiting for you today. "
                "You got this! 📚"
            )
        return f"{hello}! Ready to study today? 😊"

    def coach_tip(
        self,
        plans: list[StudyPlan],
        review_topics: list[TopicMastery],
        day: date,
        now: datetime,
    ) -> str:
        if len(review_topics) >= MANY_REVIEWS:
            return REVIEW_TIP
        for plan in plans:
            days_left = dates.ceil_days_between(now, plan.target_end_date)
            if days_left <= URGENT_PLAN_DAYS and plan.completed_sessions < plan.total_sessions:
                return f'💡 Tip: "{plan.title}" is due soon. Shall we focus a little more today?'
        return COACH_TIPS[day.timetuple().tm_yday % len(COACH_TIPS)]

    async def personalize_message(self, today: TodayQuests, streak: int) -> str:
        """Rewrite the daily message with the LLM; keep the template on any failure."""
        if self._llm is None:
            return today.daily_message
        titles = ", ".join(q.title for q in today.all_quests) or "none"
        user_prompt = (
            f"Template message: {today.daily_message}\n"
            f"Streak: {streak} days\n"
            f"Today's quests: {titles}"
        )
        try:
            text = await asyncio.wait_for(
                self._llm.complete(PERSONALIZE_SYSTEM_PROMPT, user_prompt),
                timeout=self._settings.generation_timeout_seconds,
            )
        except TimeoutError:
            logger.warning("message_personalization_timeout", student_id=today.student_id)
            return today.daily_message
        except Exception as e:
            logger.warning(
                "message_personalization_failed",
                student_id=today.student_id,
                error=str(e),
            )
            return today.daily_message
        return text.strip() or today.daily_message

    def fallback_quests(
        self,
        request: QuestGenerationRequest,
        current_streak: int,
        now: datetime,
    ) -> TodayQuests:
        """Minimal template quest set used when generation fails."""
        day = request.date
        quest = DailyQuest(
            id=f"study-{request.student_id}-{day.isoformat()}-fallback",
            student_id=request.student_id,
            date=day,
            type=QuestType.STUDY,
            title="📖 Warm-up study",
            description="A short study session to keep your rhythm going.",
            target_value=FALLBACK_MINUTES,
            unit="min",
            difficulty=QuestDifficulty.EASY,
            xp_reward=XP_BY_DIFFICULTY[QuestDifficulty.EASY],
            estimated_minutes=FALLBACK_MINUTES,
            expires_at=dates.end_of_day(day),
            tags=["study", "fallback"],
        )
        summary = summarize_quests([quest], current_streak)
        return TodayQuests(
            student_id=request.student_id,
            date=day,
            main_quests=[quest],
            summary=summary,
            daily_message=self.daily_message(current_streak, summary, now),
            coach_tip=COACH_TIPS[day.timetuple().tm_yday % len(COACH_TIPS)],
            generated_at=now,
            generated_by=GeneratedBy.FALLBACK,
        )

    def _study_quest(
        self,
        student_id: str,
        day: date,
        plan: StudyPlan,
        session: StudySession,
        priority: int,
    ) -> DailyQuest:
        return DailyQuest(
            id=f"study-{student_id}-{day.isoformat()}-{session.id}",
            student_id=student_id,
            date=day,
            type=QuestType.STUDY,
            title=f"📖 {session.topic}",
            description=f"Session {session.order} of {plan.title}.",
            subject=plan.subject,
            plan_id=plan.id,
            session_id=session.id,
            topic_id=session.topic,
            target_value=session.estimated_minutes,
            unit="min",
            difficulty=progress_difficulty(plan.completion_fraction),
            priority=priority,
            xp_reward=20 + (session.estimated_minutes // 10) * 5,
            estimated_minutes=session.estimated_minutes,
            expires_at=dates.end_of_day(day),
            tags=["study", plan.subject.lower()],
        )


def progress_difficulty(completion: float) -> QuestDifficulty:
    """Later sessions of a plan are rated harder."""
    if completion < 0.3:
        return QuestDifficulty.EASY
    if completion < 0.6:
        return QuestDifficulty.MEDIUM
    if completion < 0.9:
        return QuestDifficulty.HARD
    return QuestDifficulty.EXTREME


def mastery_difficulty(mastery_score: float) -> QuestDifficulty:
    """Weaker topics are rated harder (mastery on the 0-10 scale)."""
    normalized = mastery_score / 10
    if normalized >= 0.8:
        return QuestDifficulty.EASY
    if normalized >= 0.5:
        return QuestDifficulty.MEDIUM
    if normalized >= 0.3:
        return QuestDifficulty.HARD
    return QuestDifficulty.EXTREME
