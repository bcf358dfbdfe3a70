"""Unit tests for prompt context rendering."""

from datetime import datetime, timedelta

from questy_coach.models.burnout import BurnoutIndicator, BurnoutLevel
from questy_coach.models.context import MemoryContext
from questy_coach.models.mastery import TopicMastery
from questy_coach.models.memory import LearningMemory, RetrievedMemory, ScoreBreakdown, Subject
from questy_coach.services.context_injector import MemoryContextInjector


def _retrieved(memory: LearningMemory, score: float = 0.82) -> RetrievedMemory:
    return RetrievedMemory(memory=memory, retrieval_score=score, score_breakdown=ScoreBreakdown())


def _mastery(topic_id: str, score: float, now: datetime, **overrides: object) -> TopicMastery:
    fields = {
        "topic_id": topic_id,
        "subject": Subject.MATH,
        "mastery_score": score,
        "next_review_date": now,
        "last_review_date": now,
    }
    fields.update(overrides)
    return TopicMastery(**fields)


def _burnout(level: BurnoutLevel, now: datetime, **overrides: object) -> BurnoutIndicator:
    return BurnoutIndicator(student_id="student-1", level=level, last_assessed_at=now, **overrides)


class TestInjectContext:
    """Tests for the full context block."""

    def test_empty_context_renders_nothing(self) -> None:
        assert MemoryContextInjector().inject_context(MemoryContext()) == ""

    def test_memories_section(self, sample_memory: LearningMemory) -> None:
        context = MemoryContext(relevant_memories=[_retrieved(sample_memory)])

        text = MemoryContextInjector().inject_context(context)

        assert text.startswith("<student_learning_context>\n## Relevant learning memories")
        assert "1. ❌ ❌ Wrong: sign error in quadratic formula (82%)" in text
        assert text.endswith("</student_learning_context>")

    def test_verbose_memories(self, sample_memory: LearningMemory) -> None:
        context = MemoryContext(relevant_memories=[_retrieved(sample_memory, 0.6)])

        text = MemoryContextInjector(verbose=True).inject_context(context)

        assert "[WRONG_ANSWER]" in text
        assert "Relevance: ███░░ (60%)" in text
        assert "Subject: MATH | Confidence: 80%" in text

    def test_memories_are_limited(self, sample_memory: LearningMemory) -> None:
        context = MemoryContext(relevant_memories=[_retrieved(sample_memory)] * 4)

        text = MemoryContextInjector(max_memories=2).inject_context(context)

        assert "2. " in text
        assert "3. " not in text

    def test_mastery_puts_current_subject_first(self, now: datetime) -> None:
        context = MemoryContext(
            mastery_info=[
                _mastery("verbs", 1.0, now, subject=Subject.ENGLISH),
                _mastery("fractions", 8.5, now),
            ]
        )

        text = MemoryContextInjector().inject_context(context, current_subject=Subject.MATH)

        assert text.index("fractions") < text.index("verbs")
        assert "- fractions: ▓▓▓▓▓▓▓▓░░ mastered (8.5/10)" in text
        assert "very weak (1.0/10)" in text

    def test_review_due_section(self, now: datetime) -> None:
        context = MemoryContext(
            review_due=[
                _mastery("quadratic", 2.0, now, next_review_date=now - timedelta(days=5)),
                _mastery("fractions", 5.0, now, next_review_date=now - timedelta(days=1)),
                _mastery("ratios", 5.0, now),
            ]
        )

        text = MemoryContextInjector().inject_context(context, now=now)

        assert "- 🚨 quadratic (5 days overdue)" in text
        assert "- ⚠️ fractions (1 days overdue)" in text
        assert "- 📅 ratios (today)" in text

    def test_burnout_section(self, now: datetime) -> None:
        status = _burnout(
            BurnoutLevel.HIGH,
            now,
            warning_signals=["Consecutive frustration: felt frustrated 3 times in a row."],
            coping_strategies=["😴 Get enough sleep."],
        )

        text = MemoryContextInjector().inject_context(MemoryContext(burnout_status=status))

        assert "🔴 Burnout risk: HIGH" in text
        assert "⚠️ Warning signal: Consecutive frustration" in text
        assert "💡 Suggestion: 😴 Get enough sleep." in text

    def test_low_burnout_has_no_suggestion(self, now: datetime) -> None:
        status = _burnout(BurnoutLevel.LOW, now, coping_strategies=["💪 Keep going."])

        text = MemoryContextInjector().inject_context(MemoryContext(burnout_status=status))

        assert "🟢 Burnout risk: LOW" in text
        assert "Suggestion" not in text

    def test_burnout_can_be_excluded(self, now: datetime) -> None:
        context = MemoryContext(burnout_status=_burnout(BurnoutLevel.HIGH, now))

        assert MemoryContextInjector(include_burnout=False).inject_context(context) == ""


class TestCompactContext:
    """Tests for the one-line summary."""

    def test_compact_context(self, sample_memory: LearningMemory, now: datetime) -> None:
        context = MemoryContext(
            relevant_memories=[_retrieved(sample_memory)],
            mastery_info=[_mastery("quadratic", 2.0, now), _mastery("fractions", 9.0, now)],
            burnout_status=_burnout(BurnoutLevel.MEDIUM, now),
        )

        text = MemoryContextInjector().create_compact_context(context)

        assert text == (
            "[memories] ❌ Wrong: sign error in quadratic formula"
            " | [weak] quadratic | [state] MEDIUM"
        )

    def test_compact_context_empty(self) -> None:
        assert MemoryContextInjector().create_compact_context(MemoryContext()) == ""
