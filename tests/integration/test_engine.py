"""Integration tests for the QuestyCoach facade."""

from collections.abc import Iterator
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest

from mocks.mock_embedding import MockEmbeddingService
from mocks.mock_llm import MockLLM
from mocks.mock_sources import FailingPlanSource, InMemoryPlanSource
from questy_coach import QuestyCoach
from questy_coach.config import QuestyCoachConfig, RedisSettings
from questy_coach.infra.local.state_store import InMemoryStateStore
from questy_coach.models.memory import Subject
from questy_coach.models.plan import StudyPlan
from questy_coach.models.quest import QuestGenerationRequest, QuestStatus, StatsPeriod
from questy_coach.models.routing import HandlerRole
from questy_coach.models.schedule import (
    CrisisLevel,
    ModificationStrategy,
    PlanSettings,
    ScheduleChangeRequest,
)

TODAY = date(2025, 3, 12)
STUDENT = "student-1"


@pytest.fixture(autouse=True)
def frozen_now(now: datetime) -> Iterator[None]:
    with patch("questy_coach.utils.dates.now", return_value=now):
        yield


@pytest.fixture
def config() -> QuestyCoachConfig:
    return QuestyCoachConfig(redis=RedisSettings(enabled=False))


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


def _coach(
    config: QuestyCoachConfig,
    state_store: InMemoryStateStore,
    plan: StudyPlan,
) -> QuestyCoach:
    return QuestyCoach(
        config=config,
        llm=MockLLM(),
        embedding=MockEmbeddingService(),
        state_store=state_store,
        plan_source=InMemoryPlanSource([plan]),
    )


class TestLifecycle:
    """Tests for connecting the facade."""

    def test_calls_before_connect_raise(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        coach = _coach(config, state_store, sample_plan)

        with pytest.raises(RuntimeError, match="not connected"):
            coach.classify("hello")

    @pytest.mark.asyncio
    async def test_classify_after_connect(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            decision = coach.classify("I'm so stressed and tired, I can't do this anymore")

        assert decision.target_handler in set(HandlerRole)

    @pytest.mark.asyncio
    async def test_reconnect_builds_fresh_owned_instances(
        self, config: QuestyCoachConfig, sample_plan: StudyPlan
    ) -> None:
        coach = QuestyCoach(
            state_store_class=InMemoryStateStore,
            config=config,
            state_store_custom_config={},
            embedding=MockEmbeddingService(),
            plan_source=InMemoryPlanSource([sample_plan]),
        )
        async with coach:
            first = coach._state_store
        async with coach:
            second = coach._state_store
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )

        assert isinstance(first, InMemoryStateStore)
        assert second is not first
        assert today.main_quests


class TestQuestFlow:
    """Tests for generating and completing quests through the facade."""

    @pytest.mark.asyncio
    async def test_generate_complete_and_stats(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY), student_name="Alex"
            )
            quest_id = today.main_quests[0].id
            assert quest_id == "study-student-1-2025-03-12-s-4"
            assert "Alex" in today.daily_message

            result = await coach.complete_quest(STUDENT, quest_id)
            assert result is not None
            assert result.earned_xp == 35
            assert result.quest.status == QuestStatus.COMPLETED

            # Completing twice awards nothing
            assert await coach.complete_quest(STUDENT, quest_id) is None

            stats = await coach.get_stats(STUDENT, StatsPeriod.ALL)
            assert stats.completed_quests == 1
            assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_state_survives_a_new_engine(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            await coach.complete_quest(STUDENT, today.main_quests[0].id)

        async with _coach(config, state_store, sample_plan) as coach:
            saved = await coach.get_today_quests(STUDENT, TODAY)
            stats = await coach.get_stats(STUDENT)

        assert saved is not None
        assert saved.main_quests[0].status == QuestStatus.COMPLETED
        assert stats.completed_quests == 1

    @pytest.mark.asyncio
    async def test_progress_to_target_completes(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            quest = today.main_quests[0]

            updated = await coach.update_progress(quest.id, STUDENT, quest.target_value)

        assert updated is not None
        assert updated.status == QuestStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_quest_of_a_past_day_cannot_be_completed(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            quest_id = today.main_quests[0].id

            with patch("questy_coach.utils.dates.now", return_value=datetime(2025, 3, 14, 10, 0)):
                result = await coach.complete_quest(STUDENT, quest_id)
                progressed = await coach.update_progress(quest_id, STUDENT, 5)
                stats = await coach.get_stats(STUDENT)
            saved = await coach.get_today_quests(STUDENT, TODAY)

        assert result is None
        assert progressed is not None
        assert progressed.status == QuestStatus.EXPIRED
        assert progressed.current_value == 0
        assert stats.completed_quests == 0
        assert stats.total_xp_earned == 0
        assert stats.current_streak == 0
        assert saved is not None
        assert saved.main_quests[0].status == QuestStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_review_quests_follow_the_requested_day(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            await coach.record_learning_result(STUDENT, "quadratic", 2, subject=Subject.MATH)
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            tomorrow = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY + timedelta(days=1))
            )

        assert today.review_quests == []
        assert [q.topic_id for q in tomorrow.review_quests] == ["quadratic"]

    @pytest.mark.asyncio
    async def test_plan_source_failure_yields_no_study_quests(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore
    ) -> None:
        coach = QuestyCoach(
            config=config,
            state_store=state_store,
            embedding=MockEmbeddingService(),
            plan_source=FailingPlanSource(),
        )
        async with coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )

        assert today.main_quests == []


class TestScheduling:
    """Tests for delay analysis and rescheduling through the facade."""

    @pytest.mark.asyncio
    async def test_no_delay_after_completion(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            await coach.complete_quest(STUDENT, today.main_quests[0].id)

            analysis = await coach.analyze_delays(STUDENT)
            pending = await coach.get_pending_notifications(STUDENT)

        assert analysis.crisis_level == CrisisLevel.NONE
        assert analysis.expired_quests == []
        assert pending == []

    @pytest.mark.asyncio
    async def test_analysis_expires_reported_quests(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        yesterday = TODAY - timedelta(days=1)
        async with _coach(config, state_store, sample_plan) as coach:
            past = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=yesterday)
            )
            quest_id = past.main_quests[0].id

            first = await coach.analyze_delays(STUDENT)
            saved = await coach.get_today_quests(STUDENT, yesterday)
            second = await coach.analyze_delays(STUDENT)

        assert quest_id in [e.quest.id for e in first.expired_quests]
        assert saved is not None
        assert saved.main_quests[0].status == QuestStatus.EXPIRED
        assert second.expired_quests == []

    @pytest.mark.asyncio
    async def test_extend_moves_open_quests(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        tomorrow = TODAY + timedelta(days=1)
        async with _coach(config, state_store, sample_plan) as coach:
            await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=tomorrow)
            )
            options = await coach.generate_rescheduling_options(
                ScheduleChangeRequest(
                    student_id=STUDENT,
                    skip_from_date=tomorrow,
                    skip_until_date=date(2025, 3, 15),
                )
            )
            extend = next(o for o in options if o.strategy == ModificationStrategy.EXTEND)

            result = await coach.apply_reschedule(STUDENT, extend.id, options)
            moved = await coach.get_today_quests(STUDENT, date(2025, 3, 16))
            emptied = await coach.get_today_quests(STUDENT, tomorrow)

        assert result.success is True
        assert [q.date for q in result.modified_quests] == [date(2025, 3, 16)]
        assert moved is not None
        assert moved.main_quests[0].id == "study-student-1-2025-03-13-s-4"
        assert emptied is not None
        assert emptied.main_quests == []

    @pytest.mark.asyncio
    async def test_auto_reschedule_moves_unfinished_quest(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        plan = PlanSettings(
            plan_id=sample_plan.id,
            plan_name=sample_plan.title,
            total_days=30,
            remaining_days=20,
            target_end_date=sample_plan.target_end_date.date(),
        )
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            quest_id = today.main_quests[0].id

            results = await coach.auto_reschedule(STUDENT, plan)
            moved = await coach.get_today_quests(STUDENT, results[0].new_date)

        assert len(results) == 1
        assert results[0].original_quest.quest_id == quest_id
        assert results[0].new_date > TODAY
        assert moved is not None
        assert quest_id in [q.id for q in moved.all_quests]

    @pytest.mark.asyncio
    async def test_auto_reschedule_without_quests(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        plan = PlanSettings(
            plan_id=sample_plan.id,
            plan_name=sample_plan.title,
            target_end_date=sample_plan.target_end_date.date(),
        )
        async with _coach(config, state_store, sample_plan) as coach:
            assert await coach.auto_reschedule(STUDENT, plan) == []


class TestMemoryAndErasure:
    """Tests for learning results and student data erasure."""

    @pytest.mark.asyncio
    async def test_record_learning_result(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            mastery = await coach.record_learning_result(
                STUDENT, "quadratic", 2, subject=Subject.MATH
            )
            due = await coach.get_topics_due_for_review(STUDENT)

        assert mastery.total_attempts == 1
        assert mastery.repetitions == 0
        # Failed reviews come back tomorrow
        assert due == []

    @pytest.mark.asyncio
    async def test_delete_student_data(
        self, config: QuestyCoachConfig, state_store: InMemoryStateStore, sample_plan: StudyPlan
    ) -> None:
        async with _coach(config, state_store, sample_plan) as coach:
            today = await coach.generate_today_quests(
                QuestGenerationRequest(student_id=STUDENT, date=TODAY)
            )
            await coach.complete_quest(STUDENT, today.main_quests[0].id)

            await coach.delete_student_data(STUDENT)

            assert await coach.get_today_quests(STUDENT, TODAY) is None
            stats = await coach.get_stats(STUDENT)

        assert stats.completed_quests == 0
        assert await state_store.get("quests", STUDENT) is None
        assert await state_store.get("delays", STUDENT) is None
