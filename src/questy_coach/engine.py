"""QuestyCoach engine for personalization and scheduling.

This module provides the main entry point for the questy_coach package,
wiring the memory, quest and scheduling services behind one async
facade with per-student locking and state persistence.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import Any

from questy_coach.config import QuestyCoachConfig
from questy_coach.infra.local.state_store import InMemoryStateStore
from questy_coach.infra.local.vector_backend import InMemoryVectorBackend
from questy_coach.infra.redis.state_store import RedisStateStore
from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.interfaces.llm import LLMInterface
from questy_coach.interfaces.sources import CompletionHistoryInterface, PlanSourceInterface
from questy_coach.interfaces.state_store import StateStoreInterface
from questy_coach.interfaces.vector_store import VectorBackendInterface
from questy_coach.logging import get_logger, student_context
from questy_coach.models.burnout import BurnoutIndicator, StudyAdvice
from questy_coach.models.context import MemoryContext
from questy_coach.models.mastery import TopicMastery
from questy_coach.models.memory import Emotion, LearningMemory, MemoryExtractionRequest, Subject
from questy_coach.models.plan import StudyPlan
from questy_coach.models.quest import (
    DailyQuest,
    QuestCompletionResult,
    QuestFilter,
    QuestGenerationRequest,
    QuestProgressUpdate,
    QuestStats,
    QuestStatus,
    StatsPeriod,
    TodayQuests,
)
from questy_coach.models.routing import RouteDecision
from questy_coach.models.schedule import (
    AutoRescheduleResult,
    DelayAnalysis,
    DelayNotification,
    PlanSettings,
    RescheduleOption,
    RescheduleStrategy,
    ScheduleChangeRequest,
    ScheduleModificationResult,
    StudentPattern,
)
from questy_coach.services.auto_rescheduler import AutoRescheduler
from questy_coach.services.delay_handler import ScheduleDelayHandler
from questy_coach.services.intent_classifier import IntentClassifier
from questy_coach.services.memory_lane import MemoryLane
from questy_coach.services.quest_generator import QuestGenerator
from questy_coach.services.quest_tracker import QuestTracker
from questy_coach.services.schedule_modifier import ScheduleModifier
from questy_coach.services.vector_store import VectorMemoryStore
from questy_coach.utils import dates

__all__ = ["QuestyCoach"]

logger = get_logger(__name__)

QUESTS_NAMESPACE = "quests"
DELAYS_NAMESPACE = "delays"


class QuestyCoach:
    """Main facade of the personalization and scheduling engine.

    Accepts implementation classes or ready instances. Config is loaded
    from .env automatically. For custom implementations, set
    config_class = None and pass a custom_config dict.

    Calls that change one student's state are serialized per student;
    different students proceed in parallel.

    Example:
        async with QuestyCoach(
            vector_backend_class=MongoVectorBackend,
            llm_class=OpenAIProvider,
            plan_source=my_plan_source,
        ) as coach:
            today = await coach.generate_today_quests(request)
            await coach.complete_quest("student-1", today.main_quests[0].id)
    """

    def __init__(
        self,
        vector_backend_class: type[VectorBackendInterface] | None = None,
        state_store_class: type[StateStoreInterface] | None = None,
        llm_class: type[LLMInterface] | None = None,
        *,
        config: QuestyCoachConfig | None = None,
        vector_backend_custom_config: dict[str, Any] | None = None,
        state_store_custom_config: dict[str, Any] | None = None,
        llm_custom_config: dict[str, Any] | None = None,
        llm: LLMInterface | None = None,
        embedding: EmbeddingServiceInterface | None = None,
        vector_backend: VectorBackendInterface | None = None,
        state_store: StateStoreInterface | None = None,
        plan_source: PlanSourceInterface | None = None,
        completion_history: CompletionHistoryInterface | None = None,
    ) -> None:
        """Initialize QuestyCoach with implementation classes or instances.

        Injected instances win over classes. Without a vector backend the
        memory store runs in-process (using the injected embedding
        service if any). Without a state store, Redis is used when it is
        enabled in config, else an in-memory store.

        Args:
            vector_backend_class: Vector backend implementation class
            state_store_class: State store implementation class
            llm_class: LLM implementation class (for message personalization)
            config: Engine configuration (default: loaded from .env)
            vector_backend_custom_config: Custom config dict if config_class is None
            state_store_custom_config: Custom config dict if config_class is None
            llm_custom_config: Custom config dict if config_class is None
            llm: Ready LLM instance
            embedding: Ready embedding service for the in-process vector backend
            vector_backend: Ready vector backend instance
            state_store: Ready state store instance
            plan_source: Where active study plans are read from
            completion_history: Where quest completion times are read from
        """
        self._config = config or QuestyCoachConfig()

        self._vector_backend_class = vector_backend_class
        self._state_store_class = state_store_class
        self._llm_class = llm_class

        self._vector_backend_custom_config = vector_backend_custom_config
        self._state_store_custom_config = state_store_custom_config
        self._llm_custom_config = llm_custom_config

        # Instances (injected, or created on connect)
        self._llm = llm
        self._embedding = embedding
        self._vector_backend = vector_backend
        self._state_store = state_store
        self._plan_source = plan_source
        self._completion_history = completion_history
        self._owned: list[Any] = []

        # Services
        self._classifier = IntentClassifier(self._config.router)
        self._tracker = QuestTracker(self._config.quest)
        self._delay = ScheduleDelayHandler(self._config.delay)
        self._rescheduler = AutoRescheduler()
        self._modifier = ScheduleModifier()
        self._lane: MemoryLane | None = None
        self._generator: QuestGenerator | None = None

        self._locks: dict[str, asyncio.Lock] = {}
        self._loaded: set[str] = set()
        self._connected = False

    def _settings_for(self, config_class: type) -> Any:
        """Reuse the matching section of the engine config, else load from .env."""
        for name in type(self._config).model_fields:
            section = getattr(self._config, name)
            if isinstance(section, config_class):
                return section
        return config_class()

    async def _instantiate_class(
        self,
        cls: type,
        custom_config: dict[str, Any] | None,
    ) -> Any:
        """Instantiate an implementation class.

        If cls.config_class is set, use the matching settings section.
        If cls.config_class is None, use custom_config dict.
        """
        config_class = getattr(cls, "config_class", None)

        if config_class is None:
            if custom_config is None:
                raise ValueError(
                    f"{cls.__name__} has config_class=None but no custom_config provided"
                )
            instance = await cls.from_dict(custom_config)
        else:
            instance = await cls.from_config(self._settings_for(config_class))
        self._owned.append(instance)
        return instance

    async def _connect(self) -> None:
        """Initialize backends and wire services."""
        if self._connected:
            return

        if self._vector_backend is None:
            if self._vector_backend_class is not None:
                self._vector_backend = await self._instantiate_class(
                    self._vector_backend_class, self._vector_backend_custom_config
                )
            elif self._embedding is not None:
                self._vector_backend = InMemoryVectorBackend(self._embedding)

        if self._state_store is None:
            if self._state_store_class is not None:
                self._state_store = await self._instantiate_class(
                    self._state_store_class, self._state_store_custom_config
                )
            elif self._config.redis_enabled:
                self._state_store = await self._instantiate_class(RedisStateStore, None)
            else:
                self._state_store = InMemoryStateStore()

        if self._llm is None and self._llm_class is not None:
            self._llm = await self._instantiate_class(self._llm_class, self._llm_custom_config)

        vector_store = VectorMemoryStore(
            primary=self._vector_backend,
            embedding_dimensions=self._config.llm.embedding_dimensions,
        )
        self._lane = MemoryLane(
            vector_store,
            self._state_store,
            settings=self._config.memory,
            retrieval_settings=self._config.retrieval,
            repetition_settings=self._config.spaced_repetition,
            burnout_settings=self._config.burnout,
        )
        self._generator = QuestGenerator(self._config.quest, self._llm)

        self._connected = True
        logger.info(
            "questy_coach_connected",
            vector_backend=type(self._vector_backend).__name__ if self._vector_backend else None,
            state_store=type(self._state_store).__name__,
            llm=type(self._llm).__name__ if self._llm else None,
        )

    async def _disconnect(self) -> None:
        """Close owned connections and forget them, so a reconnect builds fresh ones."""
        for instance in reversed(self._owned):
            if hasattr(instance, "close"):
                try:
                    await instance.close()
                except Exception as e:
                    logger.warning(
                        "close_failed", component=type(instance).__name__, error=str(e)
                    )
        for name in ("_vector_backend", "_state_store", "_llm"):
            if any(getattr(self, name) is instance for instance in self._owned):
                setattr(self, name, None)
        self._owned.clear()
        self._lane = None
        self._generator = None
        self._connected = False
        logger.info("questy_coach_disconnected")

    async def __aenter__(self) -> "QuestyCoach":
        """Async context manager entry - connects automatically."""
        await self._connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit - disconnects automatically."""
        await self._disconnect()

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise RuntimeError(
                "QuestyCoach not connected. Use 'async with QuestyCoach(...) as coach:'"
            )

    @property
    def memory_lane(self) -> MemoryLane:
        self._ensure_connected()
        assert self._lane is not None
        return self._lane

    @property
    def tracker(self) -> QuestTracker:
        return self._tracker

    @asynccontextmanager
    async def _lock(self, student_id: str) -> AsyncIterator[None]:
        """Serialize one student's state changes and tag their log events."""
        lock = self._locks.setdefault(student_id, asyncio.Lock())
        with student_context(student_id):
            async with lock:
                yield

    # === ROUTING ===

    def classify(self, text: str) -> RouteDecision:
        """Classify a student message and pick a handler and model tier."""
        self._ensure_connected()
        return self._classifier.classify(text)

    # === MEMORY ===

    async def retrieve_context(
        self,
        student_id: str,
        query: str,
        current_subject: Subject | None = None,
    ) -> MemoryContext:
        return await self.memory_lane.retrieve_context(student_id, query, current_subject)

    async def get_context_for_prompt(
        self,
        student_id: str,
        query: str,
        current_subject: Subject | None = None,
        compact: bool = False,
    ) -> str:
        """Render a student's learning context for an LLM system prompt."""
        return await self.memory_lane.get_context_for_prompt(
            student_id, query, current_subject, compact
        )

    async def extract_memories(
        self,
        student_id: str,
        request: MemoryExtractionRequest,
    ) -> list[LearningMemory]:
        """Extract and store learning memories from a conversation."""
        lane = self.memory_lane
        async with self._lock(student_id):
            return await lane.extract_and_store(student_id, request)

    async def record_learning_result(
        self,
        student_id: str,
        topic_id: str,
        quality: float,
        subject: Subject | None = None,
        emotion: Emotion | None = None,
    ) -> TopicMastery:
        """Record a graded review (quality 0-5) and an optional emotion."""
        lane = self.memory_lane
        async with self._lock(student_id):
            return await lane.record_learning_result(
                student_id, topic_id, quality, subject, emotion
            )

    async def record_feedback(
        self,
        student_id: str,
        memory_id: str,
        positive: bool,
    ) -> LearningMemory | None:
        lane = self.memory_lane
        async with self._lock(student_id):
            return await lane.record_feedback(student_id, memory_id, positive)

    async def check_burnout_status(self, student_id: str) -> BurnoutIndicator:
        return await self.memory_lane.check_burnout_status(student_id)

    async def should_continue_studying(self, student_id: str) -> StudyAdvice:
        return await self.memory_lane.should_continue_studying(student_id)

    async def get_topics_due_for_review(
        self,
        student_id: str,
        subject: Subject | None = None,
    ) -> list[TopicMastery]:
        return await self.memory_lane.get_topics_due_for_review(student_id, subject)

    # === QUESTS ===

    async def generate_today_quests(
        self,
        request: QuestGenerationRequest,
        active_plans: list[StudyPlan] | None = None,
        student_name: str | None = None,
    ) -> TodayQuests:
        """Generate and save a student's quests for the requested day.

        Args:
            request: Student, day and preferences
            active_plans: Plans to build from (default: read from the plan source)
            student_name: Name used in the daily message

        Returns:
            The saved TodayQuests
        """
        lane = self.memory_lane
        assert self._generator is not None
        student_id = request.student_id

        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            plans = active_plans if active_plans is not None else await self._load_plans(student_id)
            review_topics = await lane.get_topics_due_for_review(
                student_id, now=dates.start_of_day(request.date)
            )
            streak = self._tracker.get_streak(student_id, request.date)

            today = await self._generator.generate_today_quests(
                request,
                plans,
                review_topics,
                streak,
                student_name=student_name,
            )
            self._tracker.save_today_quests(today)
            await self._persist(student_id)

        logger.info(
            "today_quests_generated",
            student_id=student_id,
            date=request.date.isoformat(),
            quests=len(today.all_quests),
            generated_by=str(today.generated_by),
        )
        return today

    async def get_today_quests(
        self,
        student_id: str,
        day: date | None = None,
    ) -> TodayQuests | None:
        self._ensure_connected()
        await self._ensure_loaded(student_id)
        return self._tracker.get_today_quests(student_id, day)

    async def update_progress(
        self,
        quest_id: str,
        student_id: str,
        delta: int,
        notes: str | None = None,
    ) -> DailyQuest | None:
        """Add progress to a quest; reaching the target completes it."""
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            now = dates.now()
            update = QuestProgressUpdate(
                quest_id=quest_id,
                student_id=student_id,
                progress_delta=delta,
                timestamp=now,
                notes=notes,
            )
            quest = self._tracker.update_progress(update, now)
            if quest is None:
                await self._persist(student_id)
                return None
            if quest.status == QuestStatus.COMPLETED and quest.completed_at == now:
                self._delay.record_completion(student_id, now)
            await self._persist(student_id)
            return quest.model_copy(deep=True)

    async def complete_quest(
        self,
        student_id: str,
        quest_id: str,
    ) -> QuestCompletionResult | None:
        """Complete a quest; a repeated call returns None and awards nothing."""
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            now = dates.now()
            result = self._tracker.complete_quest(student_id, quest_id, now)
            if result is None:
                await self._persist(student_id)
                return None
            self._delay.record_completion(student_id, now)
            await self._persist(student_id)
            return result

    async def skip_quest(self, student_id: str, quest_id: str) -> DailyQuest | None:
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            quest = self._tracker.skip_quest(student_id, quest_id)
            if quest is not None:
                await self._persist(student_id)
            return quest

    async def get_stats(
        self,
        student_id: str,
        period: StatsPeriod = StatsPeriod.ALL,
    ) -> QuestStats:
        self._ensure_connected()
        await self._ensure_loaded(student_id)
        return self._tracker.get_stats(student_id, period)

    # === SCHEDULING ===

    async def analyze_delays(
        self,
        student_id: str,
        today_quests: TodayQuests | None = None,
        notify: bool = True,
    ) -> DelayAnalysis:
        """Analyze overdue work and queue a delay notification when needed.

        Args:
            student_id: Student to analyze
            today_quests: Today's quest set (default: the saved one)
            notify: Whether to act on the analysis: queue a notification for
                non-NONE levels and move the reported overdue quests to EXPIRED

        Returns:
            DelayAnalysis for the student
        """
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            now = dates.now()
            analysis = await self._analyze(student_id, today_quests, now)
            if notify:
                queued = self._delay.generate_delay_notification(student_id, analysis)
                expired = self._tracker.expire_overdue(student_id, now)
                if queued or expired:
                    await self._persist(student_id)
            return analysis

    async def get_pending_notifications(self, student_id: str) -> list[DelayNotification]:
        self._ensure_connected()
        await self._ensure_loaded(student_id)
        return self._delay.get_pending_notifications(student_id)

    async def dismiss_notification(self, student_id: str, notification_id: str) -> bool:
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            dismissed = self._delay.dismiss_notification(student_id, notification_id)
            if dismissed:
                await self._persist(student_id)
            return dismissed

    async def generate_rescheduling_options(
        self,
        request: ScheduleChangeRequest,
        active_plans: list[StudyPlan] | None = None,
        today_quests: TodayQuests | None = None,
    ) -> list[RescheduleOption]:
        """Propose ways to absorb the days a student cannot study."""
        self._ensure_connected()
        student_id = request.student_id
        await self._ensure_loaded(student_id)
        plans = active_plans if active_plans is not None else await self._load_plans(student_id)
        if today_quests is None:
            today_quests = self._tracker.get_today_quests(student_id)
        return self._modifier.generate_rescheduling_options(request, plans, today_quests)

    async def apply_reschedule(
        self,
        student_id: str,
        option_id: str,
        options: list[RescheduleOption],
    ) -> ScheduleModificationResult:
        """Apply a rescheduling option to the student's open quests and save them."""
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            option = next((o for o in options if o.id == option_id), None)
            date_from = min(option.skip_start, dates.now().date()) if option else None
            existing = self._tracker.filter_quests(
                QuestFilter(
                    student_id=student_id,
                    date_from=date_from,
                    plan_id=option.plan_id if option else None,
                )
            )
            result = self._modifier.apply_reschedule(option_id, options, existing)
            if result.success and result.modified_quests:
                self._tracker.replace_quests(student_id, result.modified_quests)
                await self._persist(student_id)
            return result

    async def auto_reschedule(
        self,
        student_id: str,
        plan: PlanSettings,
        pattern: StudentPattern | None = None,
        apply: bool = True,
    ) -> list[AutoRescheduleResult]:
        """Move today's unfinished quests of a plan to a better day.

        Args:
            student_id: Student whose quests are moved
            plan: Settings of the plan the quests belong to
            pattern: Study behavior (default: derived from saved quests and delays)
            apply: Whether to write the moves back to the tracker

        Returns:
            One AutoRescheduleResult per unfinished quest
        """
        self._ensure_connected()
        async with self._lock(student_id):
            await self._ensure_loaded(student_id)
            now = dates.now()
            today = now.date()
            today_quests = self._tracker.get_today_quests(student_id, today)
            if today_quests is None:
                return []

            incomplete = [
                quest
                for quest in self._rescheduler.detect_incomplete_quests(
                    today_quests, plan.plan_id, plan.plan_name, plan.exclude_weekends
                )
                if quest.plan_id == plan.plan_id
            ]
            if not incomplete:
                return []

            if pattern is None:
                pattern = await self._student_pattern(student_id, today_quests, now)
            tomorrow = self._tracker.get_today_quests(student_id, today + timedelta(days=1))
            existing = (
                len(tomorrow.main_quests) + len(tomorrow.review_quests) if tomorrow else 0
            )
            results = self._rescheduler.batch_reschedule(
                incomplete, plan, pattern, existing, today
            )

            if apply:
                moved = [self._moved_quest(today_quests, r) for r in results]
                self._tracker.replace_quests(
                    student_id, [q for q in moved if q is not None], now
                )
                await self._persist(student_id)

        logger.info(
            "auto_reschedule_completed",
            student_id=student_id,
            plan_id=plan.plan_id,
            quests=len(results),
            applied=apply,
        )
        return results

    # === ERASURE ===

    async def delete_student_data(self, student_id: str) -> None:
        """Erase everything stored for a student."""
        lane = self.memory_lane
        assert self._state_store is not None
        async with self._lock(student_id):
            await lane.delete_student_data(student_id)
            self._tracker.delete_student(student_id)
            self._delay.delete_student(student_id)
            for namespace in (QUESTS_NAMESPACE, DELAYS_NAMESPACE):
                try:
                    await self._state_store.delete(namespace, student_id)
                except Exception as e:
                    logger.warning(
                        "state_delete_failed",
                        student_id=student_id,
                        namespace=namespace,
                        error=str(e),
                    )
            self._loaded.discard(student_id)
        logger.info("student_data_deleted", student_id=student_id)

    # === INTERNALS ===

    async def _load_plans(self, student_id: str) -> list[StudyPlan]:
        if self._plan_source is None:
            return []
        try:
            return await self._plan_source.get_active_plans(student_id)
        except Exception as e:
            logger.warning("plan_source_failed", student_id=student_id, error=str(e))
            return []

    async def _completion_dates(self, student_id: str) -> list[datetime] | None:
        if self._completion_history is None:
            return None
        try:
            return await self._completion_history.get_completion_dates(student_id)
        except Exception as e:
            logger.warning("completion_history_failed", student_id=student_id, error=str(e))
            return None

    async def _analyze(
        self,
        student_id: str,
        today_quests: TodayQuests | None,
        now: datetime,
    ) -> DelayAnalysis:
        if today_quests is None:
            today_quests = self._tracker.get_today_quests(student_id, now.date())
        past = self._tracker.get_recent_quests(
            student_id, self._config.delay.lookback_days, now.date()
        )
        completions = await self._completion_dates(student_id)
        return self._delay.analyze_delays(student_id, today_quests, past, completions, now)

    async def _student_pattern(
        self,
        student_id: str,
        today_quests: TodayQuests,
        now: datetime,
    ) -> StudentPattern:
        stats = self._tracker.get_stats(student_id, StatsPeriod.WEEK, now)
        analysis = await self._analyze(student_id, today_quests, now)
        return StudentPattern(
            average_quests_per_day=stats.total_quests / 7,
            completion_rate=stats.completion_rate if stats.total_quests else 1.0,
            weekend_availability=True,
            consecutive_missed_days=analysis.consecutive_missed_days,
        )

    @staticmethod
    def _moved_quest(today: TodayQuests, result: AutoRescheduleResult) -> DailyQuest | None:
        quest = next(
            (q for q in today.all_quests if q.id == result.original_quest.quest_id), None
        )
        if quest is None:
            return None
        update: dict[str, Any] = {
            "date": result.new_date,
            "expires_at": dates.end_of_day(result.new_date),
        }
        if result.strategy == RescheduleStrategy.REDUCE_LOAD:
            update["target_value"] = max(1, quest.target_value // 2)
            update["estimated_minutes"] = max(1, quest.estimated_minutes // 2)
        return quest.model_copy(update=update)

    async def _ensure_loaded(self, student_id: str) -> None:
        """Hydrate tracker and delay state from the state store once per student."""
        if student_id in self._loaded or self._state_store is None:
            return
        self._loaded.add(student_id)
        try:
            quests = await self._state_store.get(QUESTS_NAMESPACE, student_id)
            delays = await self._state_store.get(DELAYS_NAMESPACE, student_id)
        except Exception as e:
            logger.warning("state_load_failed", student_id=student_id, error=str(e))
            return
        if quests:
            self._tracker.import_student(student_id, quests)
        if delays:
            self._delay.import_student(student_id, delays)

    async def _persist(self, student_id: str) -> None:
        if self._state_store is None:
            return
        try:
            await self._state_store.set(
                QUESTS_NAMESPACE, student_id, self._tracker.export_student(student_id)
            )
            await self._state_store.set(
                DELAYS_NAMESPACE, student_id, self._delay.export_student(student_id)
            )
        except Exception as e:
            logger.warning("state_persist_failed", student_id=student_id, error=str(e))
