"""Internal domain entities for questy_coach."""

from questy_coach.domain.student_progress import BADGE_CATALOG, StudentProgress

__all__ = [
    "BADGE_CATALOG",
    "StudentProgress",
]
