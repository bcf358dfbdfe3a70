"""Internal StudentProgress entity for questy_coach.

This module contains the per-student progress aggregate with the
streak and badge business logic used by the quest tracker.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from questy_coach.models.quest import Badge, BadgeCategory, BadgeRarity, DailyQuest

__all__ = [
    "BADGE_CATALOG",
    "StudentProgress",
]

STREAK_BADGE_DAYS = 7
XP_BADGE_THRESHOLD = 1000

BADGE_CATALOG: dict[str, Badge] = {
    "streak-7": Badge(
        id="streak-7",
        name="One-week streak",
        description="Studied seven days in a row",
        icon="🔥",
        category=BadgeCategory.STREAK,
        rarity=BadgeRarity.UNCOMMON,
        criteria="7-day streak",
    ),
    "xp-1000": Badge(
        id="xp-1000",
        name="XP Master",
        description="Earned 1000 XP",
        icon="⭐",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.RARE,
        criteria="1000 XP",
    ),
}


@dataclass
class StudentProgress:
    """Internal progress entity with streak and badge logic.

    This is a mutable internal representation owned by the quest
    tracker. It is serialized to plain dicts for the state store.
    """

    student_id: str
    xp: int = 0
    streak: int = 0
    longest_streak: int = 0
    last_active_date: date | None = None
    badges: list[Badge] = field(default_factory=list)
    completed_quests: list[DailyQuest] = field(default_factory=list)

    def register_activity(self, day: date) -> int:
        """Update the streak for activity on the given day.

        Rules:
            - same day as the last activity: unchanged
            - the day after the last activity: +1
            - a gap, or first activity: reset to 1

        Args:
            day: Day of the activity

        Returns:
            The streak after the update
        """
        if self.last_active_date == day:
            return self.streak
        if self.last_active_date is not None and day == self.last_active_date + timedelta(days=1):
            self.streak += 1
        else:
            self.streak = 1
        self.last_active_date = day
        self.longest_streak = max(self.longest_streak, self.streak)
        return self.streak

    def is_streak_active(self, today: date) -> bool:
        """A streak is alive if the student was active today or yesterday."""
        if self.last_active_date is None or self.streak == 0:
            return False
        return (today - self.last_active_date).days <= 1

    def current_streak(self, today: date) -> int:
        return self.streak if self.is_streak_active(today) else 0

    def add_xp(self, amount: int) -> None:
        self.xp += max(0, amount)

    def has_badge(self, badge_id: str) -> bool:
        return any(b.id == badge_id for b in self.badges)

    def award_badges(self, at: datetime) -> Badge | None:
        """Award every newly earned badge; return the first one awarded."""
        earned: list[Badge] = []
        if self.streak >= STREAK_BADGE_DAYS and not self.has_badge("streak-7"):
            earned.append(BADGE_CATALOG["streak-7"].model_copy(update={"earned_at": at}))
        if self.xp >= XP_BADGE_THRESHOLD and not self.has_badge("xp-1000"):
            earned.append(BADGE_CATALOG["xp-1000"].model_copy(update={"earned_at": at}))
        self.badges.extend(earned)
        return earned[0] if earned else None

    def record_completion(self, quest: DailyQuest) -> None:
        self.completed_quests.append(quest.model_copy(deep=True))

    def prune_history(self, cutoff: date) -> None:
        """Drop completed history older than the cutoff day."""
        self.completed_quests = [q for q in self.completed_quests if q.date >= cutoff]

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-able dict for the state store."""
        return {
            "student_id": self.student_id,
            "xp": self.xp,
            "streak": self.streak,
            "longest_streak": self.longest_streak,
            "last_active_date": (
                self.last_active_date.isoformat() if self.last_active_date else None
            ),
            "badges": [b.model_dump(mode="json") for b in self.badges],
            "completed_quests": [q.model_dump(mode="json") for q in self.completed_quests],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StudentProgress":
        """Create from a state store dict."""
        last_active = data.get("last_active_date")
        return cls(
            student_id=data["student_id"],
            xp=data.get("xp", 0),
            streak=data.get("streak", 0),
            longest_streak=data.get("longest_streak", 0),
            last_active_date=date.fromisoformat(last_active) if last_active else None,
            badges=[Badge.model_validate(b) for b in data.get("badges", [])],
            completed_quests=[
                DailyQuest.model_validate(q) for q in data.get("completed_quests", [])
            ],
        )
