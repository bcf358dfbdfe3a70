"""Render a MemoryContext as prompt text."""

from datetime import datetime

from questy_coach.models.burnout import BurnoutIndicator, BurnoutLevel
from questy_coach.models.context import MemoryContext
from questy_coach.models.mastery import TopicMastery
from questy_coach.models.memory import MemoryType, RetrievedMemory, Subject
from questy_coach.utils import dates

__all__ = ["MemoryContextInjector"]

TYPE_ICONS: dict[MemoryType, str] = {
    MemoryType.CORRECTION: "🔄",
    MemoryType.DECISION: "📌",
    MemoryType.INSIGHT: "💡",
    MemoryType.PATTERN: "🔁",
    MemoryType.GAP: "⚠️",
    MemoryType.LEARNING: "📚",
    MemoryType.MASTERY: "✅",
    MemoryType.STRUGGLE: "😓",
    MemoryType.WRONG_ANSWER: "❌",
    MemoryType.STRATEGY: "🎯",
    MemoryType.PREFERENCE: "❤️",
    MemoryType.EMOTION: "💭",
}

LEVEL_ICONS: dict[BurnoutLevel, str] = {
    BurnoutLevel.LOW: "🟢",
    BurnoutLevel.MEDIUM: "🟡",
    BurnoutLevel.HIGH: "🔴",
}

WEAK_MASTERY_THRESHOLD = 4.0


class MemoryContextInjector:
    """Format retrieved memories, mastery, due reviews and burnout for a prompt."""

    def __init__(
        self,
        max_memories: int = 5,
        max_mastery: int = 3,
        include_burnout: bool = True,
        verbose: bool = False,
    ) -> None:
        self._max_memories = max_memories
        self._max_mastery = max_mastery
        self._include_burnout = include_burnout
        self._verbose = verbose

    def inject_context(
        self,
        context: MemoryContext,
        current_subject: Subject | None = None,
        now: datetime | None = None,
    ) -> str:
        """Render the full context block, or "" when there is nothing to say."""
        sections: list[str] = []
        if context.relevant_memories:
            sections.append(self._format_memories(context.relevant_memories))
        if context.mastery_info:
            sections.append(self._format_mastery(context.mastery_info, current_subject))
        if context.review_due:
            sections.append(self._format_review_due(context.review_due, now or dates.now()))
        if self._include_burnout and context.burnout_status is not None:
            sections.append(self._format_burnout(context.burnout_status))

        if not sections:
            return ""
        body = "\n\n".join(sections)
        return f"<student_learning_context>\n{body}\n</student_learning_context>"

    def create_compact_context(self, context: MemoryContext) -> str:
        """One-line summary for token-constrained prompts."""
        parts: list[str] = []
        if context.relevant_memories:
            titles = "; ".join(r.memory.title for r in context.relevant_memories[:3])
            parts.append(f"[memories] {titles}")

        weak = [
            m.topic_id for m in context.mastery_info if m.mastery_score < WEAK_MASTERY_THRESHOLD
        ]
        if weak:
            parts.append(f"[weak] {', '.join(weak)}")

        status = context.burnout_status
        if status is not None and status.level != BurnoutLevel.LOW:
            parts.append(f"[state] {status.level}")
        return " | ".join(parts)

    def _format_memories(self, memories: list[RetrievedMemory]) -> str:
        lines = []
        for index, retrieved in enumerate(memories[: self._max_memories], start=1):
            memory = retrieved.memory
            icon = TYPE_ICONS.get(memory.type, "📝")
            percent = f"{retrieved.retrieval_score * 100:.0f}%"
            if self._verbose:
                lines.append(
                    f"{index}. {icon} [{memory.type}] {memory.title}\n"
                    f"   Content: {memory.content[:100]}...\n"
                    f"   Relevance: {_relevance_bar(retrieved.retrieval_score)} ({percent})\n"
                    f"   Subject: {memory.subject} | Confidence: {memory.confidence * 100:.0f}%"
                )
            else:
                lines.append(f"{index}. {icon} {memory.title} ({percent})")
        return "## Relevant learning memories\n" + "\n".join(lines)

    def _format_mastery(self, mastery: list[TopicMastery], current_subject: Subject | None) -> str:
        # Current subject first, then weakest
        ordered = sorted(
            mastery,
            key=lambda m: (
                current_subject is None or m.subject != current_subject,
                m.mastery_score,
            ),
        )[: self._max_mastery]
        lines = [
            f"- {m.topic_id}: {_mastery_bar(m.mastery_score)} {_mastery_label(m.mastery_score)} "
            f"({m.mastery_score:.1f}/10)"
            for m in ordered
        ]
        return "## Topic mastery\n" + "\n".join(lines)

    def _format_review_due(self, review_due: list[TopicMastery], now: datetime) -> str:
        lines = []
        for topic in review_due[:3]:
            overdue = max(0, dates.days_between(topic.next_review_date, now))
            if overdue > 3:
                icon = "🚨"
            elif overdue > 0:
                icon = "⚠️"
            else:
                icon = "📅"
            when = f"{overdue} days overdue" if overdue > 0 else "today"
            lines.append(f"- {icon} {topic.topic_id} ({when})")
        return "## Reviews due (SM-2)\n" + "\n".join(lines)

    def _format_burnout(self, status: BurnoutIndicator) -> str:
        lines = ["## Student state", f"{LEVEL_ICONS[status.level]} Burnout risk: {status.level}"]
        if status.warning_signals:
            lines.append(f"⚠️ Warning signal: {status.warning_signals[0]}")
        if status.level != BurnoutLevel.LOW and status.coping_strategies:
            lines.append(f"💡 Suggestion: {status.coping_strategies[0]}")
        return "\n".join(lines)


def _relevance_bar(score: float) -> str:
    filled = round(score * 5)
    return "█" * filled + "░" * (5 - filled)


def _mastery_bar(score: float) -> str:
    filled = round(score)
    return "▓" * filled + "░" * (10 - filled)


def _mastery_label(score: float) -> str:
    if score >= 8:
        return "mastered"
    if score >= 6:
        return "good"
    if score >= 4:
        return "fair"
    if score >= 2:
        return "weak"
    return "very weak"
