"""Burnout monitoring for questy_coach.

Tracks a rolling window of observed emotions per student and turns it
into a burnout level, warning signals and coping strategies.
"""

from datetime import datetime, timedelta

from questy_coach.config import BurnoutSettings
from questy_coach.logging import get_logger
from questy_coach.models.burnout import (
    BurnoutIndicator,
    BurnoutLevel,
    EmotionRecord,
    EmotionTrend,
    StudyAdvice,
    StudyRecommendation,
)
from questy_coach.models.memory import Emotion
from questy_coach.utils import dates

__all__ = [
    "BURNOUT_WEIGHTS",
    "COPING_STRATEGIES",
    "BurnoutMonitor",
]

logger = get_logger(__name__)

# Negative emotions push the score up, positive ones pull it down
BURNOUT_WEIGHTS: dict[Emotion, float] = {
    Emotion.FRUSTRATED: 0.9,
    Emotion.TIRED: 0.7,
    Emotion.CONFUSED: 0.5,
    Emotion.NEUTRAL: 0.0,
    Emotion.CURIOUS: -0.2,
    Emotion.MOTIVATED: -0.5,
    Emotion.CONFIDENT: -0.5,
}

POSITIVE_EMOTIONS = frozenset({Emotion.MOTIVATED, Emotion.CONFIDENT, Emotion.CURIOUS})

COPING_STRATEGIES: dict[BurnoutLevel, list[str]] = {
    BurnoutLevel.LOW: [
        "💪 You're in good shape! Keep up your current pace.",
        "🎯 Take a short break before your focus starts to drop.",
    ],
    BurnoutLevel.MEDIUM: [
        "⏰ Study a bit less and rest a bit more.",
        "🚶 Try a light walk or some stretching.",
        "🎵 Take a moment with some music you like.",
        "📱 Refresh yourself with another hobby for a while.",
    ],
    BurnoutLevel.HIGH: [
        "🚨 Burnout risk is high! Resting today is recommended.",
        "😴 Get enough sleep.",
        "🗣️ Talk with a parent or a teacher.",
        "🌿 Calm your mind with a walk outside.",
        "✋ It's okay to lower your goals a little.",
    ],
}

CONSECUTIVE_FRUSTRATION_THRESHOLD = 3
FREQUENT_TIREDNESS_THRESHOLD = 4
NO_POSITIVE_MIN_RECORDS = 7
RECENT_EMOTIONS_LIMIT = 10
TREND_MIN_RECORDS = 4
TREND_DELTA = 0.1


class BurnoutMonitor:
    """Rolling-window burnout assessment for many students.

    Example:
        monitor = BurnoutMonitor()
        monitor.record_emotion("student-1", Emotion.TIRED)
        indicator = monitor.assess_burnout("student-1")
    """

    def __init__(self, settings: BurnoutSettings | None = None) -> None:
        self._settings = settings or BurnoutSettings()
        self._history: dict[str, list[EmotionRecord]] = {}

    def record_emotion(
        self,
        student_id: str,
        emotion: Emotion,
        at: datetime | None = None,
    ) -> None:
        """Append an emotion and prune records outside the tracking window."""
        at = at or dates.now()
        records = self._history.get(student_id, [])
        records.append(EmotionRecord(emotion=emotion, timestamp=at))
        cutoff = at - timedelta(days=self._settings.tracking_window_days)
        self._history[student_id] = [r for r in records if r.timestamp >= cutoff]

    def assess_burnout(self, student_id: str, now: datetime | None = None) -> BurnoutIndicator:
        """Assess the current burnout level of a student.

        Args:
            student_id: Student to assess
            now: Assessment time (default: now)

        Returns:
            BurnoutIndicator with level, warning signals and coping strategies
        """
        records = self._history.get(student_id, [])
        score = self.calculate_score(records)

        if score >= self._settings.high_threshold:
            level = BurnoutLevel.HIGH
        elif score >= self._settings.medium_threshold:
            level = BurnoutLevel.MEDIUM
        else:
            level = BurnoutLevel.LOW

        signals = self.detect_warning_signals(records)
        strategies = list(COPING_STRATEGIES[level])
        if signals:
            strategies.insert(0, f"⚠️ Heads up: {len(signals)} warning signal(s) detected.")

        if level == BurnoutLevel.HIGH:
            logger.info("burnout_high", student_id=student_id, score=round(score, 3))

        return BurnoutIndicator(
            student_id=student_id,
            level=level,
            score=score,
            recent_emotions=records[-RECENT_EMOTIONS_LIMIT:],
            warning_signals=signals,
            coping_strategies=strategies,
            last_assessed_at=now or dates.now(),
        )

    @staticmethod
    def calculate_score(records: list[EmotionRecord]) -> float:
        """Recency-weighted burnout score in [0, 1]; later records weigh more."""
        if not records:
            return 0.0
        n = len(records)
        weighted = 0.0
        total = 0.0
        for index, record in enumerate(records):
            recency = (index + 1) / n
            weighted += BURNOUT_WEIGHTS[record.emotion] * recency
            total += recency
        raw = weighted / total if total > 0 else 0.0
        return max(0.0, min(1.0, (raw + 1) / 2))

    @staticmethod
    def detect_warning_signals(records: list[EmotionRecord]) -> list[str]:
        signals: list[str] = []

        trailing_frustration = 0
        for record in reversed(records):
            if record.emotion != Emotion.FRUSTRATED:
                break
            trailing_frustration += 1
        if trailing_frustration >= CONSECUTIVE_FRUSTRATION_THRESHOLD:
            signals.append(
                f"Consecutive frustration: felt frustrated {trailing_frustration} times in a row."
            )

        tired = sum(1 for r in records if r.emotion == Emotion.TIRED)
        if tired >= FREQUENT_TIREDNESS_THRESHOLD:
            signals.append(f"Frequent tiredness: reported being tired {tired} times recently.")

        if len(records) >= NO_POSITIVE_MIN_RECORDS and not any(
            r.emotion in POSITIVE_EMOTIONS for r in records
        ):
            signals.append("No positive emotions: none observed over the past week.")

        return signals

    def should_continue_studying(self, student_id: str) -> StudyAdvice:
        level = self.assess_burnout(student_id).level
        if level == BurnoutLevel.HIGH:
            return StudyAdvice(
                should_continue=False,
                recommendation=StudyRecommendation.STOP_TODAY,
                reason="Burnout risk is high. Get some proper rest today.",
            )
        if level == BurnoutLevel.MEDIUM:
            return StudyAdvice(
                should_continue=False,
                recommendation=StudyRecommendation.TAKE_BREAK,
                reason="Fatigue is building up. Take a short break.",
            )
        return StudyAdvice(
            should_continue=True,
            recommendation=StudyRecommendation.CONTINUE,
            reason="You're in good condition. Keep studying.",
        )

    def get_emotion_trend(self, student_id: str) -> tuple[EmotionTrend, str]:
        """Compare the later half of the window against the earlier half.

        Returns:
            (trend, summary); STABLE with fewer than four records
        """
        records = self._history.get(student_id, [])
        if len(records) < TREND_MIN_RECORDS:
            return EmotionTrend.STABLE, "Not enough data yet."

        mid = len(records) // 2
        diff = self.calculate_score(records[mid:]) - self.calculate_score(records[:mid])
        if diff < -TREND_DELTA:
            return EmotionTrend.IMPROVING, "Your mood has been improving lately! 👍"
        if diff > TREND_DELTA:
            return EmotionTrend.DECLINING, "Stress has been rising lately. Take care."
        return EmotionTrend.STABLE, "Your mood is stable."

    def export_history(self, student_id: str) -> list[EmotionRecord]:
        return list(self._history.get(student_id, []))

    def import_history(self, student_id: str, records: list[EmotionRecord]) -> None:
        self._history[student_id] = sorted(records, key=lambda r: r.timestamp)

    def clear(self, student_id: str) -> None:
        self._history.pop(student_id, None)
