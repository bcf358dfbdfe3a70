"""In-memory plan source and completion history for testing."""

from datetime import datetime

from questy_coach.models.plan import PlanStatus, StudyPlan


class InMemoryPlanSource:
    """Serves plans registered per student."""

    def __init__(self, plans: list[StudyPlan] | None = None) -> None:
        self._plans: dict[str, list[StudyPlan]] = {}
        for plan in plans or []:
            self.add(plan)

    def add(self, plan: StudyPlan) -> None:
        self._plans.setdefault(plan.student_id, []).append(plan)

    async def get_active_plans(self, student_id: str) -> list[StudyPlan]:
        return [p for p in self._plans.get(student_id, []) if p.status == PlanStatus.ACTIVE]


class FailingPlanSource:
    async def get_active_plans(self, student_id: str) -> list[StudyPlan]:
        raise ConnectionError("plan store unavailable")


class StaticCompletionHistory:
    """Returns fixed completion times for every student."""

    def __init__(self, completions: list[datetime]) -> None:
        self._completions = completions

    async def get_completion_dates(self, student_id: str) -> list[datetime]:
        return list(self._completions)
