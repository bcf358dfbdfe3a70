"""Unit tests for automatic rescheduling of unfinished quests."""

from datetime import date, datetime

import pytest

from questy_coach.models.quest import DailyQuest, QuestStatus, QuestType, TodayQuests
from questy_coach.models.schedule import (
    IncompleteQuest,
    MessageActionType,
    PlanSettings,
    RescheduleStrategy,
    StudentPattern,
)
from questy_coach.services.auto_rescheduler import AutoRescheduler
from questy_coach.utils import dates

WEDNESDAY = date(2025, 3, 12)
THURSDAY = date(2025, 3, 13)
SATURDAY = date(2025, 3, 15)
MONDAY = date(2025, 3, 17)


def _quest(minutes: int = 20, exclude_weekends: bool = False) -> IncompleteQuest:
    return IncompleteQuest(
        quest_id="q-1",
        plan_id="plan-math",
        plan_name="Algebra Basics",
        unit_title="Quadratic equations",
        day=4,
        original_date=WEDNESDAY,
        estimated_minutes=minutes,
        exclude_weekends=exclude_weekends,
    )


def _plan(remaining_days: int = 10, exclude_weekends: bool = False) -> PlanSettings:
    return PlanSettings(
        plan_id="plan-math",
        plan_name="Algebra Basics",
        exclude_weekends=exclude_weekends,
        total_days=30,
        remaining_days=remaining_days,
        target_end_date=date(2025, 3, 22),
    )


class TestDecisionTable:
    """Tests for strategy selection, one row at a time."""

    def test_reduce_load_in_crisis(self) -> None:
        pattern = StudentPattern(consecutive_missed_days=2, completion_rate=0.3)

        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(), _plan(), pattern, 0, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.REDUCE_LOAD
        assert result.confidence == 0.9
        assert result.new_date == THURSDAY
        assert result.stacked_count is None
        assert "cut" in result.coach_message
        assert [a.id for a in result.message_actions] == ["accept-reduce-q-1", "custom-date-q-1"]

    def test_weekend_spillover_when_tomorrow_is_full(self) -> None:
        pattern = StudentPattern(weekend_availability=True)

        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(exclude_weekends=True), _plan(), pattern, 2, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.WEEKEND_SPILLOVER
        assert result.confidence == 0.85
        assert result.new_date == SATURDAY
        assert result.is_weekend is True
        assert "**Sat, Mar 15 (weekend)**" in result.coach_message
        weekday = result.message_actions[1]
        assert weekday.id == "change-to-weekday-q-1"
        assert weekday.type == MessageActionType.RESCHEDULE_QUEST
        assert weekday.data == {"plan_id": "plan-math", "quest_day": 4, "new_date": "2025-03-17"}

    def test_short_quest_stacks(self) -> None:
        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(20), _plan(), StudentPattern(), 1, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.STACK_NEXT_DAY
        assert result.confidence == 0.8
        assert result.new_date == THURSDAY
        assert result.stacked_count == 2
        assert "**Thu, Mar 13**" in result.coach_message
        assert "You'll have 2 quests that day. A bit busy" in result.coach_message

    def test_weekend_when_plan_skips_weekends(self) -> None:
        pattern = StudentPattern(weekend_availability=True)

        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(60, exclude_weekends=True), _plan(), pattern, 0, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.WEEKEND_SPILLOVER
        assert result.confidence == 0.75

    def test_extend_after_deadline(self) -> None:
        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(60), _plan(remaining_days=0), StudentPattern(), 0, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.EXTEND_DEADLINE
        assert result.confidence == 0.7
        assert "past its target date" in result.coach_message
        assert result.message_actions[0].id == "accept-extend-q-1"

    def test_stack_near_deadline(self) -> None:
        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(60), _plan(remaining_days=2), StudentPattern(), 3, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.STACK_NEXT_DAY
        assert result.confidence == 0.7
        assert result.stacked_count == 4

    def test_default_stack(self) -> None:
        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(60), _plan(), StudentPattern(), 3, today=WEDNESDAY
        )

        assert result.strategy == RescheduleStrategy.STACK_NEXT_DAY
        assert result.confidence == 0.65

    def test_custom_date_action_is_last(self) -> None:
        result = AutoRescheduler().evaluate_and_reschedule(
            _quest(exclude_weekends=True), _plan(), StudentPattern(), 0, today=WEDNESDAY
        )

        assert [a.id for a in result.message_actions] == [
            "accept-stack-q-1",
            "move-to-weekend-q-1",
            "custom-date-q-1",
        ]
        last = result.message_actions[-1]
        assert last.type == MessageActionType.NAVIGATE
        assert last.data == {"navigate_to": "/plans/plan-math/reschedule"}


class TestNewDate:
    """Tests for target day selection."""

    @pytest.mark.parametrize(
        ("strategy", "exclude_weekends", "today", "expected"),
        [
            (RescheduleStrategy.STACK_NEXT_DAY, False, date(2025, 3, 14), SATURDAY),
            (RescheduleStrategy.STACK_NEXT_DAY, True, date(2025, 3, 14), MONDAY),
            (RescheduleStrategy.REDUCE_LOAD, True, date(2025, 3, 15), MONDAY),
            (RescheduleStrategy.WEEKEND_SPILLOVER, True, SATURDAY, date(2025, 3, 22)),
        ],
    )
    def test_new_date(
        self,
        strategy: RescheduleStrategy,
        exclude_weekends: bool,
        today: date,
        expected: date,
    ) -> None:
        assert AutoRescheduler.new_date(strategy, exclude_weekends, today) == expected


class TestBatch:
    """Tests for batch rescheduling and incomplete quest detection."""

    def test_stacking_raises_the_next_day_count(self) -> None:
        quests = [
            _quest(20).model_copy(update={"quest_id": f"q-{i}"}) for i in range(3)
        ]

        results = AutoRescheduler().batch_reschedule(
            quests, _plan(), StudentPattern(), 0, today=WEDNESDAY
        )

        assert [r.stacked_count for r in results] == [1, 2, 3]
        assert [r.confidence for r in results] == [0.8, 0.8, 0.65]

    def test_detect_incomplete_quests(self) -> None:
        now = datetime(2025, 3, 12, 22, 0)

        def quest(quest_id: str, status: QuestStatus, quest_type: QuestType) -> DailyQuest:
            return DailyQuest(
                id=quest_id,
                student_id="student-1",
                date=WEDNESDAY,
                type=quest_type,
                title=quest_id,
                target_value=30,
                status=status,
                estimated_minutes=25,
                expires_at=dates.end_of_day(WEDNESDAY),
            )

        today = TodayQuests(
            student_id="student-1",
            date=WEDNESDAY,
            main_quests=[
                quest("open", QuestStatus.AVAILABLE, QuestType.STUDY),
                quest("done", QuestStatus.COMPLETED, QuestType.STUDY),
            ],
            review_quests=[quest("review", QuestStatus.IN_PROGRESS, QuestType.REVIEW)],
            bonus_quests=[quest("streak", QuestStatus.AVAILABLE, QuestType.STREAK)],
            generated_at=now,
        )

        incomplete = AutoRescheduler.detect_incomplete_quests(
            today, "plan-math", "Algebra Basics", exclude_weekends=True
        )

        assert [q.quest_id for q in incomplete] == ["open", "review"]
        assert incomplete[0].plan_id == "plan-math"
        assert incomplete[0].estimated_minutes == 25
        assert incomplete[0].exclude_weekends is True
