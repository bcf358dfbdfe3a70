"""Unit tests for schedule delay detection."""

from datetime import date, datetime, timedelta

import pytest

from questy_coach.config import DelaySettings
from questy_coach.models.quest import DailyQuest, QuestStatus, QuestType, TodayQuests
from questy_coach.models.schedule import (
    ButtonAction,
    CarryOverAction,
    CrisisLevel,
    DelayAnalysis,
    NotificationPriority,
    NotificationType,
    SuggestionType,
)
from questy_coach.services.delay_handler import (
    CARRIED_OVER_TAG,
    ScheduleDelayHandler,
    determine_crisis_level,
)
from questy_coach.utils import dates


def _quest(quest_id: str, day: date, **overrides: object) -> DailyQuest:
    fields = {
        "id": quest_id,
        "student_id": "student-1",
        "date": day,
        "type": QuestType.STUDY,
        "title": f"Quest {quest_id}",
        "target_value": 30,
        "estimated_minutes": 30,
        "expires_at": dates.end_of_day(day),
    }
    fields.update(overrides)
    return DailyQuest(**fields)


def _day(day: date, *quests: DailyQuest) -> TodayQuests:
    return TodayQuests(
        student_id="student-1",
        date=day,
        main_quests=list(quests),
        generated_at=dates.start_of_day(day),
    )


class TestCrisisLevel:
    """Tests for crisis classification."""

    @pytest.mark.parametrize(
        ("missed", "expired", "level"),
        [
            (0, 0, CrisisLevel.NONE),
            (0, 1, CrisisLevel.WARNING),
            (1, 0, CrisisLevel.WARNING),
            (0, 3, CrisisLevel.CONCERN),
            (2, 0, CrisisLevel.CONCERN),
            (3, 0, CrisisLevel.CRISIS),
            (5, 10, CrisisLevel.CRISIS),
        ],
    )
    def test_levels(self, missed: int, expired: int, level: CrisisLevel) -> None:
        assert determine_crisis_level(missed, expired) == level

    def test_monotonic_in_both_arguments(self) -> None:
        order = list(CrisisLevel)
        for missed in range(6):
            for expired in range(6):
                level = order.index(determine_crisis_level(missed, expired))
                assert order.index(determine_crisis_level(missed + 1, expired)) >= level
                assert order.index(determine_crisis_level(missed, expired + 1)) >= level


class TestAnalyzeDelays:
    """Tests for delay analysis."""

    def test_three_missed_days_is_crisis(self, now: datetime) -> None:
        today = now.date()
        past = [
            _day(today - timedelta(days=2), _quest("q-10", today - timedelta(days=2))),
            _day(today - timedelta(days=1), _quest("q-11", today - timedelta(days=1))),
        ]
        completions = [datetime(2025, 3, 9, 20, 0)]

        analysis = ScheduleDelayHandler().analyze_delays(
            "student-1", _day(today, _quest("q-12", today)), past, completions, now=now
        )

        assert analysis.consecutive_missed_days == 3
        assert analysis.crisis_level == CrisisLevel.CRISIS
        assert analysis.last_completed_date == completions[0]
        assert sorted(e.quest.id for e in analysis.expired_quests) == ["q-10", "q-11"]
        suggestion = analysis.reschedule_suggestion
        assert suggestion is not None
        assert suggestion.type == SuggestionType.REDUCE_LOAD
        assert suggestion.estimated_minutes == 10
        assert suggestion.suggested_quests[0].reduced_target_value == 15
        assert suggestion.suggested_quests[0].new_date == today + timedelta(days=1)

    def test_no_delay(self, now: datetime) -> None:
        today = now.date()
        analysis = ScheduleDelayHandler().analyze_delays(
            "student-1", _day(today, _quest("q", today)), [], [now - timedelta(hours=1)], now=now
        )

        assert analysis.crisis_level == CrisisLevel.NONE
        assert analysis.consecutive_missed_days == 0
        assert analysis.reschedule_suggestion is None

    def test_new_student_has_no_missed_days(self, now: datetime) -> None:
        analysis = ScheduleDelayHandler().analyze_delays("student-1", None, [], [], now=now)

        assert analysis.consecutive_missed_days == 0
        assert analysis.crisis_level == CrisisLevel.NONE

    def test_walk_stops_at_first_known_day(self, now: datetime) -> None:
        today = now.date()
        analysis = ScheduleDelayHandler().analyze_delays(
            "student-1", _day(today, _quest("q", today)), [], [], now=now
        )

        assert analysis.consecutive_missed_days == 1
        assert analysis.crisis_level == CrisisLevel.WARNING

    def test_walk_is_bounded_by_lookback(self, now: datetime) -> None:
        handler = ScheduleDelayHandler(DelaySettings(lookback_days=2))
        completions = [now - timedelta(days=10)]

        analysis = handler.analyze_delays("student-1", None, [], completions, now=now)

        assert analysis.consecutive_missed_days == 2

    def test_closed_quests_are_not_expired(self, now: datetime) -> None:
        yesterday = now.date() - timedelta(days=1)
        past = [
            _day(
                yesterday,
                _quest("done", yesterday, status=QuestStatus.COMPLETED),
                _quest("skipped", yesterday, status=QuestStatus.SKIPPED),
            )
        ]

        analysis = ScheduleDelayHandler().analyze_delays(
            "student-1", None, past, [now - timedelta(days=1)], now=now
        )

        assert analysis.expired_quests == []

    def test_uses_recorded_completions_by_default(self, now: datetime) -> None:
        handler = ScheduleDelayHandler()
        handler.record_completion("student-1", now - timedelta(hours=2))

        analysis = handler.analyze_delays("student-1", None, [], now=now)

        assert analysis.consecutive_missed_days == 0


class TestCarryOver:
    """Tests for carry-over decisions and suggestions."""

    def test_carry_over_actions(self, now: datetime) -> None:
        day = now.date()
        handler = ScheduleDelayHandler()

        assert handler.carry_over_action(_quest("a", day), 3) == CarryOverAction.SKIP
        review = _quest("r", day, type=QuestType.REVIEW)
        assert handler.carry_over_action(review, 1) == CarryOverAction.COMBINE
        long = _quest("l", day, estimated_minutes=60)
        assert handler.carry_over_action(long, 1) == CarryOverAction.REDUCE
        assert handler.carry_over_action(_quest("s", day), 1) == CarryOverAction.CARRY_OVER

    def test_concern_suggestion(self, now: datetime) -> None:
        yesterday = now.date() - timedelta(days=1)
        past = [
            _day(
                yesterday,
                _quest("long", yesterday, estimated_minutes=60, target_value=60),
                _quest("short", yesterday),
                _quest("extra", yesterday),
            )
        ]

        analysis = ScheduleDelayHandler().analyze_delays(
            "student-1", None, past, [now - timedelta(hours=1)], now=now
        )

        assert analysis.crisis_level == CrisisLevel.CONCERN
        suggestion = analysis.reschedule_suggestion
        assert suggestion is not None
        assert suggestion.type == SuggestionType.CARRY_OVER
        assert [s.original_quest_id for s in suggestion.suggested_quests] == ["long", "short"]
        assert suggestion.suggested_quests[0].reduced_target_value == 42
        assert suggestion.suggested_quests[1].reduced_target_value == 30
        assert suggestion.estimated_minutes == 90

    def test_carried_over_quest(self, now: datetime) -> None:
        original = _quest("q", now.date(), current_value=12, status=QuestStatus.IN_PROGRESS)
        tomorrow = now.date() + timedelta(days=1)

        carried = ScheduleDelayHandler.create_carried_over_quest(original, tomorrow, 20)

        assert carried.id == "q-carryover-2025-03-13"
        assert carried.status == QuestStatus.AVAILABLE
        assert carried.current_value == 0
        assert carried.target_value == 20
        assert carried.tags == [CARRIED_OVER_TAG]
        assert original.current_value == 12

    def test_mark_as_expired_is_a_copy(self, now: datetime) -> None:
        original = _quest("q", now.date())

        expired = ScheduleDelayHandler.mark_as_expired(original)

        assert expired.status == QuestStatus.EXPIRED
        assert original.status == QuestStatus.AVAILABLE


class TestNotifications:
    """Tests for delay notifications."""

    def _crisis(self, handler: ScheduleDelayHandler, now: datetime) -> DelayAnalysis:
        yesterday = now.date() - timedelta(days=1)
        past = [_day(yesterday, _quest("q", yesterday))]
        return handler.analyze_delays("student-1", None, past, [now - timedelta(days=4)], now=now)

    def test_crisis_notification(self, now: datetime) -> None:
        handler = ScheduleDelayHandler()
        analysis = self._crisis(handler, now)

        notification = handler.generate_delay_notification("student-1", analysis)

        assert notification is not None
        assert notification.type == NotificationType.CRISIS
        assert notification.priority == NotificationPriority.URGENT
        assert notification.title == "4 days off 💙"
        assert "just 10 minutes" in notification.message
        assert [b.action for b in notification.action_buttons] == [
            ButtonAction.START_NOW,
            ButtonAction.TALK_TO_COACH,
        ]
        assert notification.quest_ids == ["q"]
        assert notification.id.startswith("notif-")

    def test_no_notification_without_delay(self, now: datetime) -> None:
        handler = ScheduleDelayHandler()
        analysis = handler.analyze_delays("student-1", None, [], [now], now=now)

        assert handler.generate_delay_notification("student-1", analysis) is None
        assert handler.get_pending_notifications("student-1") == []

    def test_pending_and_dismiss(self, now: datetime) -> None:
        handler = ScheduleDelayHandler()
        notification = handler.generate_delay_notification(
            "student-1", self._crisis(handler, now)
        )
        assert notification is not None

        assert handler.get_pending_notifications("student-1") == [notification]
        assert handler.dismiss_notification("student-1", notification.id) is True
        assert handler.dismiss_notification("student-1", notification.id) is False
        assert handler.get_pending_notifications("student-1") == []

    def test_export_import(self, now: datetime) -> None:
        handler = ScheduleDelayHandler()
        handler.record_completion("student-1", now)
        handler.generate_delay_notification("student-1", self._crisis(handler, now))

        restored = ScheduleDelayHandler()
        restored.import_student("student-1", handler.export_student("student-1"))

        assert restored.get_completion_dates("student-1") == [now]
        assert len(restored.get_pending_notifications("student-1")) == 1

    def test_completion_history_is_pruned(self, now: datetime) -> None:
        handler = ScheduleDelayHandler(DelaySettings(completion_history_days=5))
        handler.record_completion("student-1", now - timedelta(days=10))
        handler.record_completion("student-1", now)

        assert handler.get_completion_dates("student-1") == [now]
