"""Automatic rescheduling of unfinished quests for questy_coach."""

from dataclasses import dataclass
from datetime import date, timedelta

from questy_coach.logging import get_logger
from questy_coach.models.quest import QuestStatus, TodayQuests
from questy_coach.models.schedule import (
    AutoRescheduleResult,
    IncompleteQuest,
    MessageAction,
    MessageActionType,
    PlanSettings,
    RescheduleStrategy,
    StudentPattern,
)
from questy_coach.utils import dates

__all__ = [
    "AutoRescheduler",
]

logger = get_logger(__name__)

SHORT_QUEST_MINUTES = 30
DEADLINE_NEAR_DAYS = 3

_OPEN = (QuestStatus.LOCKED, QuestStatus.AVAILABLE, QuestStatus.IN_PROGRESS)


@dataclass(frozen=True)
class _Decision:
    strategy: RescheduleStrategy
    reasoning: str
    confidence: float


class AutoRescheduler:
    """Pick a reschedule strategy for each unfinished quest.

    The decision table is evaluated top to bottom and the first
    matching row wins:

        1. missed >= 2 days and completion rate < 0.5   REDUCE_LOAD        0.9
        2. next day has >= 2 quests, weekends usable    WEEKEND_SPILLOVER  0.85
        3. quest <= 30 min and next day has <= 1 quest  STACK_NEXT_DAY     0.8
        4. plan skips weekends but weekend available    WEEKEND_SPILLOVER  0.75
        5. deadline already passed                      EXTEND_DEADLINE    0.7
        6. deadline within 3 days                       STACK_NEXT_DAY     0.7
        7. otherwise                                    STACK_NEXT_DAY     0.65
    """

    def evaluate_and_reschedule(
        self,
        quest: IncompleteQuest,
        plan: PlanSettings,
        pattern: StudentPattern,
        existing_quests_on_next_day: int,
        today: date | None = None,
    ) -> AutoRescheduleResult:
        """Decide where an unfinished quest goes.

        Args:
            quest: The unfinished quest
            plan: Settings of the quest's plan
            pattern: Recent study behavior of the student
            existing_quests_on_next_day: Quests already scheduled for the next day
            today: Reference day (default: today)

        Returns:
            AutoRescheduleResult with the strategy, new date, coach message and actions
        """
        today = today or dates.now().date()
        decision = self.decide(quest, plan, pattern, existing_quests_on_next_day)
        new_date = self.new_date(decision.strategy, plan.exclude_weekends, today)
        stacked = (
            existing_quests_on_next_day + 1
            if decision.strategy == RescheduleStrategy.STACK_NEXT_DAY
            else None
        )
        logger.debug(
            "quest_rescheduled",
            quest_id=quest.quest_id,
            strategy=str(decision.strategy),
            new_date=new_date.isoformat(),
        )
        return AutoRescheduleResult(
            strategy=decision.strategy,
            original_quest=quest,
            new_date=new_date,
            is_weekend=dates.is_weekend(new_date),
            stacked_count=stacked,
            reasoning=decision.reasoning,
            coach_message=self._coach_message(quest, plan, decision.strategy, new_date, stacked),
            message_actions=self._message_actions(quest, decision.strategy, new_date, today),
            confidence=decision.confidence,
        )

    def batch_reschedule(
        self,
        quests: list[IncompleteQuest],
        plan: PlanSettings,
        pattern: StudentPattern,
        existing_quests_on_next_day: int = 0,
        today: date | None = None,
    ) -> list[AutoRescheduleResult]:
        """Reschedule several quests; each stacked quest adds to the next day's load."""
        results = []
        next_day_count = existing_quests_on_next_day
        for quest in quests:
            result = self.evaluate_and_reschedule(quest, plan, pattern, next_day_count, today)
            results.append(result)
            if result.strategy == RescheduleStrategy.STACK_NEXT_DAY:
                next_day_count += 1
        return results

    @staticmethod
    def detect_incomplete_quests(
        today_quests: TodayQuests,
        plan_id: str,
        plan_name: str,
        exclude_weekends: bool,
    ) -> list[IncompleteQuest]:
        """Main and review quests of a day that were never finished."""
        return [
            IncompleteQuest(
                quest_id=quest.id,
                plan_id=quest.plan_id or plan_id,
                plan_name=plan_name,
                unit_title=quest.title,
                range=quest.description,
                original_date=quest.date,
                estimated_minutes=quest.estimated_minutes,
                exclude_weekends=exclude_weekends,
            )
            for quest in [*today_quests.main_quests, *today_quests.review_quests]
            if quest.status in _OPEN
        ]

    @staticmethod
    def decide(
        quest: IncompleteQuest,
        plan: PlanSettings,
        pattern: StudentPattern,
        existing_quests_on_next_day: int,
    ) -> _Decision:
        in_crisis = pattern.consecutive_missed_days >= 2
        low_completion = pattern.completion_rate < 0.5
        weekend_ok = pattern.weekend_availability
        skips_weekends = quest.exclude_weekends

        if in_crisis and low_completion:
            return _Decision(
                RescheduleStrategy.REDUCE_LOAD,
                "Missed days in a row plus a low completion rate call for a lighter load.",
                0.9,
            )
        if existing_quests_on_next_day >= 2 and weekend_ok and skips_weekends:
            return _Decision(
                RescheduleStrategy.WEEKEND_SPILLOVER,
                "Tomorrow already has many quests, so this goes to the weekend.",
                0.85,
            )
        if quest.estimated_minutes <= SHORT_QUEST_MINUTES and existing_quests_on_next_day <= 1:
            return _Decision(
                RescheduleStrategy.STACK_NEXT_DAY,
                "The quest is 30 minutes or less, so it is added to tomorrow.",
                0.8,
            )
        if skips_weekends and weekend_ok:
            return _Decision(
                RescheduleStrategy.WEEKEND_SPILLOVER,
                "Moving to the weekend to ease the weekday load.",
                0.75,
            )
        if plan.remaining_days <= 0:
            return _Decision(
                RescheduleStrategy.EXTEND_DEADLINE,
                "The plan deadline has passed, so the deadline is extended.",
                0.7,
            )
        if plan.remaining_days <= DEADLINE_NEAR_DAYS:
            return _Decision(
                RescheduleStrategy.STACK_NEXT_DAY,
                "The deadline is close, so it is added to tomorrow.",
                0.7,
            )
        return _Decision(
            RescheduleStrategy.STACK_NEXT_DAY,
            "Default strategy: added to tomorrow.",
            0.65,
        )

    @staticmethod
    def new_date(strategy: RescheduleStrategy, exclude_weekends: bool, today: date) -> date:
        if strategy == RescheduleStrategy.WEEKEND_SPILLOVER:
            return dates.next_saturday(today)
        tomorrow = today + timedelta(days=1)
        if not exclude_weekends:
            return tomorrow
        while dates.is_weekend(tomorrow):
            tomorrow += timedelta(days=1)
        return tomorrow

    @staticmethod
    def _coach_message(
        quest: IncompleteQuest,
        plan: PlanSettings,
        strategy: RescheduleStrategy,
        new_date: date,
        stacked: int | None,
    ) -> str:
        when = f"{new_date:%a}, {new_date:%b} {new_date.day}"
        title = quest.unit_title
        if strategy == RescheduleStrategy.WEEKEND_SPILLOVER:
            return (
                f'📅 Moved "{title}" that you couldn\'t finish today to **{when} (weekend)**!\n\n'
                "It's on the weekend so your weekdays don't pile up. You can do it! 💪"
            )
        if strategy == RescheduleStrategy.STACK_NEXT_DAY:
            total = stacked or 1
            cheer = "A bit busy, but you can do it! 💪" if total >= 2 else "No pressure! 😊"
            return (
                f'📚 Added "{title}" that you couldn\'t finish today to **{when}**!\n\n'
                f"You'll have {total} quests that day. {cheer}"
            )
        if strategy == RescheduleStrategy.REDUCE_LOAD:
            return (
                f'😊 You\'ve been busy lately, right? I **cut "{title}" in half** '
                f"and put it on {when}.\n\nTake it slow! 💕"
            )
        return (
            f'⏳ "{plan.plan_name}" is past its target date, so I extended it '
            f'and moved "{title}" to {when}.'
        )

    @staticmethod
    def _message_actions(
        quest: IncompleteQuest,
        strategy: RescheduleStrategy,
        new_date: date,
        today: date,
    ) -> list[MessageAction]:
        actions: list[MessageAction] = []
        if strategy == RescheduleStrategy.WEEKEND_SPILLOVER:
            actions.append(
                MessageAction(
                    id=f"accept-weekend-{quest.quest_id}",
                    type=MessageActionType.CUSTOM,
                    label="👍 Sounds good",
                    icon="✅",
                    data={"custom_handler": "accept_reschedule"},
                )
            )
            actions.append(
                MessageAction(
                    id=f"change-to-weekday-{quest.quest_id}",
                    type=MessageActionType.RESCHEDULE_QUEST,
                    label="Move to a weekday",
                    icon="📆",
                    data={
                        "plan_id": quest.plan_id,
                        "quest_day": quest.day,
                        "new_date": dates.next_weekday(new_date).isoformat(),
                    },
                )
            )
        elif strategy == RescheduleStrategy.STACK_NEXT_DAY:
            actions.append(
                MessageAction(
                    id=f"accept-stack-{quest.quest_id}",
                    type=MessageActionType.CUSTOM,
                    label="👍 Got it",
                    icon="✅",
                    data={"custom_handler": "accept_reschedule"},
                )
            )
            if quest.exclude_weekends:
                actions.append(
                    MessageAction(
                        id=f"move-to-weekend-{quest.quest_id}",
                        type=MessageActionType.RESCHEDULE_QUEST,
                        label="Move to the weekend",
                        icon="🗓️",
                        data={
                            "plan_id": quest.plan_id,
                            "quest_day": quest.day,
                            "new_date": dates.next_saturday(today).isoformat(),
                        },
                    )
                )
        elif strategy == RescheduleStrategy.REDUCE_LOAD:
            actions.append(
                MessageAction(
                    id=f"accept-reduce-{quest.quest_id}",
                    type=MessageActionType.CUSTOM,
                    label="👍 Thanks",
                    icon="💕",
                    data={"custom_handler": "accept_reduced"},
                )
            )
        else:
            actions.append(
                MessageAction(
                    id=f"accept-extend-{quest.quest_id}",
                    type=MessageActionType.CUSTOM,
                    label="👍 Okay",
                    icon="✅",
                    data={"custom_handler": "accept_extend"},
                )
            )

        actions.append(
            MessageAction(
                id=f"custom-date-{quest.quest_id}",
                type=MessageActionType.NAVIGATE,
                label="Pick a date",
                icon="📆",
                data={"navigate_to": f"/plans/{quest.plan_id}/reschedule"},
            )
        )
        return actions
