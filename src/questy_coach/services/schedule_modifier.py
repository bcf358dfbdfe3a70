"""Student-requested schedule changes for questy_coach.

When a student announces days off ("I'm traveling Thursday to Sunday"),
the modifier proposes ways to absorb the gap into the main plan and
applies the chosen option to copies of the affected quests.
"""

import math
from datetime import date, timedelta

from questy_coach.logging import get_logger
from questy_coach.models.plan import StudyPlan
from questy_coach.models.quest import DailyQuest, QuestStatus, TodayQuests
from questy_coach.models.schedule import (
    Feasibility,
    ModificationStrategy,
    RescheduleOption,
    ScheduleChangeRequest,
    ScheduleModificationResult,
)
from questy_coach.utils import dates

__all__ = [
    "ScheduleModifier",
]

logger = get_logger(__name__)

REDUCED_LOAD_FACTOR = 0.8
MAX_SKIPPABLE_DAYS = 5

_FEASIBILITY_ORDER = {Feasibility.HIGH: 0, Feasibility.MEDIUM: 1, Feasibility.LOW: 2}
_OPTION_SLUG = {
    ModificationStrategy.COMPRESS: "compress",
    ModificationStrategy.EXTEND: "extend",
    ModificationStrategy.SKIP: "skip",
    ModificationStrategy.REDUCE_LOAD: "reduce",
}


def _format_date(day: date) -> str:
    return f"{day:%b} {day.day}"


class ScheduleModifier:
    """Build and apply rescheduling options for skipped days.

    Options are generated for the first active plan only:

    - COMPRESS keeps the target date and packs the rest into fewer days
    - EXTEND pushes the target date back by the skipped days
    - SKIP drops the skipped days' material (up to 5 days)
    - REDUCE_LOAD lowers the daily load to 80% and extends by half the gap

    Example:
        modifier = ScheduleModifier()
        options = modifier.generate_rescheduling_options(request, plans)
        result = modifier.apply_reschedule(options[0].id, options, quests)
    """

    def generate_rescheduling_options(
        self,
        request: ScheduleChangeRequest,
        active_plans: list[StudyPlan],
        today_quests: TodayQuests | None = None,
        today: date | None = None,
    ) -> list[RescheduleOption]:
        """Propose ways to absorb the requested days off.

        Args:
            request: The days the student cannot study
            active_plans: Active plans, main plan first
            today_quests: Today's quest set, used to size affected quest counts
            today: Reference day (default: today)

        Returns:
            Options sorted recommended first, then by feasibility
        """
        skip = self.count_skip_days(request)
        if skip == 0 or not active_plans:
            return []

        today = today or dates.now().date()
        plan = active_plans[0]
        skip_start, skip_end = self._skip_window(request)
        original_end = dates.to_date(plan.target_end_date)
        remaining = self.remaining_days(plan, today)
        per_day = max(1, len(today_quests.main_quests)) if today_quests else 1

        def option(strategy: ModificationStrategy, **fields) -> RescheduleOption:
            return RescheduleOption(
                id=f"option-{_OPTION_SLUG[strategy]}-{plan.id}",
                plan_id=plan.id,
                strategy=strategy,
                original_end_date=original_end,
                skip_start=skip_start,
                skip_end=skip_end,
                **fields,
            )

        options: list[RescheduleOption] = []

        if remaining > skip:
            ratio = remaining / (remaining - skip)
            options.append(
                option(
                    ModificationStrategy.COMPRESS,
                    plan_name="📚 Compress schedule",
                    description=f"Skip {skip} day(s) and compress the rest of the schedule",
                    impact_summary=f"Keeps the target date of {_format_date(original_end)}",
                    new_end_date=original_end,
                    days_changed=0,
                    affected_quest_count=(remaining - skip) * per_day,
                    daily_load_change=f"{ratio:.1f}x more" + (" ⚠️" if ratio > 1.5 else ""),
                    load_factor=ratio,
                    is_recommended=ratio <= 1.3,
                    feasibility=(
                        Feasibility.HIGH
                        if ratio <= 1.3
                        else Feasibility.MEDIUM
                        if ratio <= 1.5
                        else Feasibility.LOW
                    ),
                    warning_message="Daily study load may get heavy" if ratio > 1.5 else None,
                )
            )

        extended_end = original_end + timedelta(days=skip)
        options.append(
            option(
                ModificationStrategy.EXTEND,
                plan_name="📅 Extend target date",
                description=f"Push the target date back by {skip} day(s)",
                impact_summary=f"New target date: {_format_date(extended_end)}",
                new_end_date=extended_end,
                days_changed=skip,
                affected_quest_count=skip * per_day,
                daily_load_change="same",
                is_recommended=True,
                feasibility=Feasibility.HIGH,
            )
        )

        if skip <= MAX_SKIPPABLE_DAYS:
            skipped_share = round(skip / remaining * 100)
            options.append(
                option(
                    ModificationStrategy.SKIP,
                    plan_name="⏭️ Skip some days",
                    description=f"Skip {skip} day(s) of material and keep going",
                    impact_summary=f"About {skipped_share}% of progress skipped",
                    new_end_date=original_end,
                    days_changed=0,
                    affected_quest_count=skip * per_day,
                    daily_load_change="same",
                    is_recommended=skip <= 2,
                    feasibility=Feasibility.HIGH if skip <= 3 else Feasibility.MEDIUM,
                    warning_message="Some material will be skipped" if skip > 2 else None,
                )
            )

        if skip >= 3:
            extra = math.ceil(skip / 2)
            reduced_end = original_end + timedelta(days=extra)
            options.append(
                option(
                    ModificationStrategy.REDUCE_LOAD,
                    plan_name="📉 Adjust load",
                    description="Lower the daily load and extend the target date a little",
                    impact_summary=(
                        f"New target date: {_format_date(reduced_end)}, 80% daily load"
                    ),
                    new_end_date=reduced_end,
                    days_changed=extra,
                    affected_quest_count=remaining * per_day,
                    daily_load_change="20% less",
                    load_factor=REDUCED_LOAD_FACTOR,
                    is_recommended=skip >= 5,
                    feasibility=Feasibility.HIGH,
                )
            )

        options.sort(key=lambda o: (not o.is_recommended, _FEASIBILITY_ORDER[o.feasibility]))
        logger.debug(
            "rescheduling_options_generated",
            student_id=request.student_id,
            plan_id=plan.id,
            skip_days=skip,
            options=[str(o.strategy) for o in options],
        )
        return options

    def apply_reschedule(
        self,
        option_id: str,
        options: list[RescheduleOption],
        existing_quests: list[DailyQuest],
    ) -> ScheduleModificationResult:
        """Apply the chosen option to copies of the existing quests.

        Only quests whose date changed, whose status changed or whose
        size changed are returned in modified_quests.
        """
        option = next((o for o in options if o.id == option_id), None)
        if option is None:
            logger.warning("reschedule_option_not_found", option_id=option_id)
            return ScheduleModificationResult(
                success=False,
                student_id=existing_quests[0].student_id if existing_quests else "",
                message="The selected option could not be found.",
            )

        modified = []
        for quest in existing_quests:
            changed = self._modify(option, quest)
            if changed is not None:
                modified.append(changed)
        logger.info(
            "reschedule_applied",
            option_id=option_id,
            strategy=str(option.strategy),
            modified=len(modified),
        )
        return ScheduleModificationResult(
            success=True,
            student_id=existing_quests[0].student_id if existing_quests else "",
            applied_option=option,
            modified_quests=modified,
            message=self._success_message(option),
        )

    @staticmethod
    def count_skip_days(request: ScheduleChangeRequest) -> int:
        if request.skip_dates:
            return len(request.skip_dates)
        if request.skip_from_date and request.skip_until_date:
            return max(0, (request.skip_until_date - request.skip_from_date).days + 1)
        return 0

    @staticmethod
    def remaining_days(plan: StudyPlan, today: date) -> int:
        """Whole days until the plan's target date, at least 1."""
        return max(1, dates.ceil_days_between(dates.start_of_day(today), plan.target_end_date))

    @staticmethod
    def _skip_window(request: ScheduleChangeRequest) -> tuple[date, date]:
        if request.skip_dates:
            return min(request.skip_dates), max(request.skip_dates)
        return request.skip_from_date, request.skip_until_date

    @staticmethod
    def _modify(option: RescheduleOption, quest: DailyQuest) -> DailyQuest | None:
        if quest.status.is_terminal:
            return None

        in_window = option.skip_start <= quest.date <= option.skip_end
        strategy = option.strategy

        if strategy in (ModificationStrategy.EXTEND, ModificationStrategy.REDUCE_LOAD):
            if quest.date < option.skip_start:
                return None
            shift = timedelta(days=option.days_changed)
            update = {"date": quest.date + shift, "expires_at": quest.expires_at + shift}
            if strategy == ModificationStrategy.REDUCE_LOAD:
                update["target_value"] = max(1, math.floor(quest.target_value * option.load_factor))
                update["estimated_minutes"] = max(
                    1, math.floor(quest.estimated_minutes * option.load_factor)
                )
            return quest.model_copy(update=update)

        if in_window:
            return quest.model_copy(update={"status": QuestStatus.SKIPPED})

        if strategy == ModificationStrategy.COMPRESS and quest.date > option.skip_end:
            return quest.model_copy(
                update={
                    "target_value": math.ceil(quest.target_value * option.load_factor),
                    "estimated_minutes": math.ceil(quest.estimated_minutes * option.load_factor),
                }
            )
        return None

    @staticmethod
    def _success_message(option: RescheduleOption) -> str:
        if option.strategy == ModificationStrategy.COMPRESS:
            return f"Schedule compressed! Daily load is now {option.daily_load_change} 💪"
        if option.strategy == ModificationStrategy.EXTEND:
            return f"Target date extended to {_format_date(option.new_end_date)} 📅"
        if option.strategy == ModificationStrategy.SKIP:
            return "We'll skip that period and keep going ⏭️"
        return "Daily load reduced and the target date adjusted 📉"
