"""Unit tests for SM-2 spaced repetition."""

from datetime import datetime, timedelta

import pytest

from questy_coach.config import SpacedRepetitionSettings
from questy_coach.models.mastery import TopicMastery
from questy_coach.models.memory import Subject
from questy_coach.services.spaced_repetition import SpacedRepetitionManager


class TestUpdateMastery:
    """Tests for a single SM-2 review step."""

    def test_perfect_reviews_grow_interval(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        manager.initialize("quadratic", Subject.MATH, now=now)

        first = manager.update_mastery("quadratic", 5, now=now)
        second = manager.update_mastery("quadratic", 5, now=now)
        third = manager.update_mastery("quadratic", 5, now=now)

        assert (first.interval, second.interval) == (1, 6)
        assert third.interval == round(6 * second.easiness_factor)
        assert third.repetitions == 3
        assert third.easiness_factor == pytest.approx(2.8)
        assert third.next_review_date == now + timedelta(days=third.interval)

    def test_failed_review_resets(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        manager.initialize("quadratic", Subject.MATH, now=now)
        manager.update_mastery("quadratic", 5, now=now)
        manager.update_mastery("quadratic", 5, now=now)

        failed = manager.update_mastery("quadratic", 2, now=now)

        assert failed.repetitions == 0
        assert failed.interval == 1
        assert failed.successful_attempts == 2
        assert failed.total_attempts == 3

    def test_easiness_never_drops_below_floor(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()

        for _ in range(5):
            mastery = manager.update_mastery("fractions", 0, now=now)

        assert mastery.easiness_factor == pytest.approx(1.3)

    def test_mastery_is_moving_average(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()

        first = manager.update_mastery("fractions", 5, now=now)
        second = manager.update_mastery("fractions", 5, now=now)

        assert first.mastery_score == pytest.approx(3.0)
        assert second.mastery_score == pytest.approx(5.1)

    def test_quality_is_clamped(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()

        mastery = manager.update_mastery("fractions", 9, now=now)

        assert mastery.mastery_score == pytest.approx(3.0)
        assert mastery.easiness_factor == pytest.approx(2.6)

    def test_unknown_topic_is_initialized_as_general(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()

        mastery = manager.update_mastery("new-topic", 4, now=now)

        assert mastery.subject == Subject.GENERAL
        assert len(manager) == 1

    def test_interval_is_capped(self, now: datetime) -> None:
        manager = SpacedRepetitionManager(SpacedRepetitionSettings(max_interval_days=10))

        for _ in range(4):
            mastery = manager.update_mastery("fractions", 5, now=now)

        assert mastery.interval == 10


class TestDueTopics:
    """Tests for review scheduling queries."""

    def test_due_topics_are_never_in_the_future(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        manager.initialize("old", Subject.MATH, now=now - timedelta(days=3))
        manager.initialize("fresh", Subject.MATH, now=now)

        due = manager.get_topics_due_for_review(now=now)

        assert [m.topic_id for m in due] == ["old"]
        assert all(m.next_review_date <= now for m in due)

    def test_due_later_today_counts(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        last_evening = now - timedelta(days=1) + timedelta(hours=8)
        manager.initialize("evening", Subject.MATH, now=last_evening)

        assert [m.topic_id for m in manager.get_topics_due_for_review(now=now)] == ["evening"]

    def test_weakest_first_and_subject_filter(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        earlier = now - timedelta(days=5)
        manager.initialize("strong", Subject.MATH, initial_score=8.0, now=earlier)
        manager.initialize("weak", Subject.MATH, initial_score=1.0, now=earlier)
        manager.initialize("verbs", Subject.ENGLISH, initial_score=0.0, now=earlier)

        math = manager.get_topics_due_for_review(Subject.MATH, now=now)

        assert [m.topic_id for m in math] == ["weak", "strong"]
        assert len(manager.get_topics_due_for_review(now=now)) == 3


class TestStatsAndRecommendations:
    """Tests for aggregates and recommendation text."""

    def test_subject_stats(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        manager.initialize("a", Subject.MATH, initial_score=9.0, now=now)
        manager.initialize("b", Subject.MATH, initial_score=1.0, now=now)
        manager.initialize("c", Subject.MATH, initial_score=5.0, now=now)

        stats = manager.get_subject_stats(Subject.MATH)

        assert stats.total_topics == 3
        assert stats.average_mastery == pytest.approx(5.0)
        assert stats.mastered_topics == 1
        assert stats.struggling_topics == 1

    def test_empty_subject_stats(self) -> None:
        stats = SpacedRepetitionManager().get_subject_stats(Subject.SCIENCE)

        assert stats.total_topics == 0
        assert stats.average_mastery == 0.0

    def test_nothing_due(self, now: datetime) -> None:
        assert SpacedRepetitionManager().generate_recommendations(now=now) == [
            "✅ No topics to review today!"
        ]

    def test_few_due_topics(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        manager.initialize(
            "quadratic", Subject.MATH, initial_score=2.0, now=now - timedelta(days=2)
        )

        lines = manager.generate_recommendations(now=now)

        assert lines[0] == "📚 Topics to review today: 1"
        assert lines[1] == "🔴 quadratic (mastery: 2.0/10)"

    def test_many_due_topics(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        for index, score in enumerate((1.0, 4.0, 7.0, 9.0)):
            manager.initialize(
                f"t{index}", Subject.MATH, initial_score=score, now=now - timedelta(days=2)
            )

        lines = manager.generate_recommendations(now=now)

        assert lines[0] == "⚠️ You have 4 overdue reviews!"
        assert [line[0] for line in lines[1:]] == ["🔴", "🟡", "🟢"]

    def test_export_import(self, now: datetime) -> None:
        manager = SpacedRepetitionManager()
        manager.update_mastery("quadratic", 4, now=now)
        exported = manager.export_all()

        restored = SpacedRepetitionManager()
        restored.import_all(exported)

        assert restored.get_mastery("quadratic") == exported[0]
        assert isinstance(restored.get_mastery("quadratic"), TopicMastery)
