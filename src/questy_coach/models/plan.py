"""Study plan models for questy_coach.

Plans are owned by an external store; the engine only reads them.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from questy_coach.models.memory import Subject

__all__ = [
    "PlanStatus",
    "SessionStatus",
    "StudyPlan",
    "StudySession",
]


class PlanStatus(StrEnum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"


class SessionStatus(StrEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class StudySession(BaseModel, frozen=True):
    """One ordered session of a study plan."""

    id: str
    plan_id: str
    order: int = Field(ge=0)
    topic: str
    estimated_minutes: int = Field(default=30, ge=0)
    status: SessionStatus = SessionStatus.PENDING


class StudyPlan(BaseModel, frozen=True):
    """A study plan as provided by the plan source.

    Attributes:
        id: Plan identifier
        student_id: Owning student
        subject: Subject of the plan
        title: Plan title (e.g. the textbook name)
        start_date: Plan start
        target_end_date: Planned completion date
        completed_sessions: Sessions already completed
        total_sessions: Total sessions in the plan
        status: Plan lifecycle status
        sessions: Ordered sessions
    """

    id: str
    student_id: str
    subject: Subject = Subject.GENERAL
    title: str
    start_date: datetime
    target_end_date: datetime
    completed_sessions: int = Field(default=0, ge=0)
    total_sessions: int = Field(default=0, ge=0)
    status: PlanStatus = PlanStatus.ACTIVE
    sessions: list[StudySession] = Field(default_factory=list)

    @property
    def completion_fraction(self) -> float:
        """Share of completed sessions (0.0 when the plan has no sessions)."""
        if self.total_sessions <= 0:
            return 0.0
        return self.completed_sessions / self.total_sessions

    def first_pending_session(self) -> StudySession | None:
        """Lowest-order session still PENDING."""
        pending = [s for s in self.sessions if s.status == SessionStatus.PENDING]
        if not pending:
            return None
        return min(pending, key=lambda s: s.order)
