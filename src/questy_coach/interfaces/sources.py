"""Read-only data source interfaces for questy_coach.

Plans and completion history live in external relational stores;
these Protocols are the engine's only view of them.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from questy_coach.models.plan import StudyPlan

__all__ = [
    "CompletionHistoryInterface",
    "PlanSourceInterface",
]


@runtime_checkable
class PlanSourceInterface(Protocol):
    """Contract for reading a student's active study plans."""

    async def get_active_plans(self, student_id: str) -> list[StudyPlan]:
        """Get the student's ACTIVE plans.

        Args:
            student_id: Student to look up

        Returns:
            Active plans, empty if none
        """
        ...


@runtime_checkable
class CompletionHistoryInterface(Protocol):
    """Contract for reading when a student completed quests."""

    async def get_completion_dates(self, student_id: str) -> list[datetime]:
        """Get completion timestamps (most recent 30 days is enough)."""
        ...
