"""SM-2 spaced repetition for questy_coach.

Each student has one SpacedRepetitionManager holding the mastery state
of every topic they have studied. Review quality (0-5) drives the SM-2
interval and easiness factor; the mastery score is an exponential
moving average of 2 * quality on a 0-10 scale.
"""

from datetime import datetime, timedelta

from questy_coach.config import SpacedRepetitionSettings
from questy_coach.logging import get_logger
from questy_coach.models.mastery import SubjectStats, TopicMastery
from questy_coach.models.memory import Subject
from questy_coach.utils import dates

__all__ = [
    "DEFAULT_EASINESS_FACTOR",
    "MASTERED_THRESHOLD",
    "STRUGGLING_THRESHOLD",
    "SpacedRepetitionManager",
]

logger = get_logger(__name__)

DEFAULT_EASINESS_FACTOR = 2.5
MASTERED_THRESHOLD = 8.0
STRUGGLING_THRESHOLD = 3.0


class SpacedRepetitionManager:
    """Per-student SM-2 scheduler with EMA mastery.

    Example:
        manager = SpacedRepetitionManager()
        manager.initialize("quadratic", Subject.MATH)
        manager.update_mastery("quadratic", quality=4)
        due = manager.get_topics_due_for_review(Subject.MATH)
    """

    def __init__(self, settings: SpacedRepetitionSettings | None = None) -> None:
        self._settings = settings or SpacedRepetitionSettings()
        self._topics: dict[str, TopicMastery] = {}

    def initialize(
        self,
        topic_id: str,
        subject: Subject,
        initial_score: float = 0.0,
        now: datetime | None = None,
    ) -> TopicMastery:
        """Start tracking a topic (replaces any existing state)."""
        now = now or dates.now()
        interval = self._settings.initial_interval_days
        mastery = TopicMastery(
            topic_id=topic_id,
            subject=subject,
            mastery_score=initial_score,
            easiness_factor=DEFAULT_EASINESS_FACTOR,
            interval=interval,
            repetitions=0,
            next_review_date=now + timedelta(days=interval),
            last_review_date=now,
        )
        self._topics[topic_id] = mastery
        return mastery

    def update_mastery(
        self,
        topic_id: str,
        quality: float,
        now: datetime | None = None,
    ) -> TopicMastery:
        """Record one review of a topic.

        Unknown topics are initialized under GENERAL first.

        Args:
            topic_id: Reviewed topic
            quality: Review quality, clamped to 0 (total failure) - 5 (perfect)
            now: Review time (default: now)

        Returns:
            The updated mastery state
        """
        now = now or dates.now()
        quality = min(5.0, max(0.0, quality))
        current = self._topics.get(topic_id)
        if current is None:
            current = self.initialize(topic_id, Subject.GENERAL, now=now)

        repetitions = current.repetitions
        interval = current.interval
        successes = current.successful_attempts

        if quality < 3:
            repetitions = 0
            interval = 1
        else:
            successes += 1
            if repetitions == 0:
                interval = 1
            elif repetitions == 1:
                interval = 6
            else:
                interval = min(
                    self._settings.max_interval_days,
                    round(interval * current.easiness_factor),
                )
            repetitions += 1

        miss = 5 - quality
        easiness = max(
            self._settings.min_easiness_factor,
            current.easiness_factor + 0.1 - miss * (0.08 + miss * 0.02),
        )

        alpha = self._settings.ema_alpha
        mastery_score = alpha * (quality * 2) + (1 - alpha) * current.mastery_score

        updated = current.model_copy(
            update={
                "mastery_score": mastery_score,
                "easiness_factor": easiness,
                "interval": interval,
                "repetitions": repetitions,
                "next_review_date": now + timedelta(days=interval),
                "last_review_date": now,
                "total_attempts": current.total_attempts + 1,
                "successful_attempts": successes,
            }
        )
        self._topics[topic_id] = updated
        logger.debug(
            "mastery_updated",
            topic_id=topic_id,
            quality=quality,
            interval=interval,
            easiness_factor=round(easiness, 3),
        )
        return updated

    def get_topics_due_for_review(
        self,
        subject: Subject | None = None,
        now: datetime | None = None,
    ) -> list[TopicMastery]:
        """Topics due today or earlier, weakest first."""
        today = dates.start_of_day(now or dates.now())
        due = [
            m
            for m in self._topics.values()
            if (subject is None or m.subject == subject)
            and dates.start_of_day(m.next_review_date) <= today
        ]
        return sorted(due, key=lambda m: m.mastery_score)

    def get_mastery(self, topic_id: str) -> TopicMastery | None:
        return self._topics.get(topic_id)

    def get_all(self) -> list[TopicMastery]:
        return list(self._topics.values())

    def get_subject_stats(self, subject: Subject) -> SubjectStats:
        topics = [m for m in self._topics.values() if m.subject == subject]
        if not topics:
            return SubjectStats(subject=subject)
        return SubjectStats(
            subject=subject,
            average_mastery=sum(m.mastery_score for m in topics) / len(topics),
            total_topics=len(topics),
            mastered_topics=sum(1 for m in topics if m.mastery_score >= MASTERED_THRESHOLD),
            struggling_topics=sum(1 for m in topics if m.mastery_score < STRUGGLING_THRESHOLD),
        )

    def export_all(self) -> list[TopicMastery]:
        return list(self._topics.values())

    def import_all(self, data: list[TopicMastery]) -> None:
        """Replace all state with the given topics."""
        self._topics = {m.topic_id: m for m in data}

    def generate_recommendations(
        self,
        subject: Subject | None = None,
        now: datetime | None = None,
    ) -> list[str]:
        """Human-readable review recommendations, most urgent topics last."""
        due = self.get_topics_due_for_review(subject, now)
        if not due:
            return ["✅ No topics to review today!"]

        if len(due) <= 3:
            lines = [f"📚 Topics to review today: {len(due)}"]
        else:
            lines = [f"⚠️ You have {len(due)} overdue reviews!"]

        for topic in due[:3]:
            if topic.mastery_score < 3:
                marker = "🔴"
            elif topic.mastery_score < 6:
                marker = "🟡"
            else:
                marker = "🟢"
            lines.append(f"{marker} {topic.topic_id} (mastery: {topic.mastery_score:.1f}/10)")
        return lines

    def __len__(self) -> int:
        return len(self._topics)
