"""RunOrchestrator — one scheduled run over both tiers.

Tier 1 (due configs, covering their inherit-mode keywords) runs to completion
before Tier 2 (custom-scheduled keywords). Each item goes through:

    attempt (guard -> saga) -> advance -> fold (summary + stats)

``_attempt_*`` never raises: every failure becomes a ProcessResult. The
schedule is advanced exactly once per item whatever the outcome, and an
advance failure is logged without stopping the run. Only a failure to select a
tier's due work aborts that tier; it is reported in ``tier_errors``.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime

from config.settings import settings
from src.gg_common.datetime_utils import utc_now
from src.gg_common.enums import ProcessStatus, SkipReason, Tier
from src.gg_common.errors import (
    DueWorkSelectionError,
    ExecutionFailedError,
    InsufficientCreditsError,
)
from src.gg_run.application.notifier import NotifierGateway
from src.gg_run.domain.budget_guard import BudgetGuard
from src.gg_run.domain.collaborators import StatsCollectorProtocol
from src.gg_run.domain.idempotency import build_idempotency_key, occurrence_of
from src.gg_run.domain.models import GuardDecision, ProcessResult, RunSummary, WorkUnit
from src.gg_run.domain.saga import ExecutionSaga
from src.gg_run.domain.stats import StatsAggregator
from src.gg_schedule.application.service import DueWorkSelector, ScheduleAdvancer
from src.gg_schedule.domain.models import ScheduleGroup, ScheduleUnit

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:12]}"


class RunOrchestrator:
    def __init__(
        self,
        selector: DueWorkSelector,
        advancer: ScheduleAdvancer,
        guard: BudgetGuard,
        saga: ExecutionSaga,
        stats_collector: StatsCollectorProtocol,
        notifier: NotifierGateway,
        inter_unit_delay_ms: int | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._selector = selector
        self._advancer = advancer
        self._guard = guard
        self._saga = saga
        self._stats_collector = stats_collector
        self._notifier = notifier
        self._delay_ms = (
            inter_unit_delay_ms
            if inter_unit_delay_ms is not None
            else settings.INTER_UNIT_DELAY_MS
        )
        self._clock = clock
        self._sleep = sleep

    async def run(self, run_id: str | None = None) -> RunSummary:
        summary = RunSummary(run_id=run_id or new_run_id())
        started = time.monotonic()
        now = self._clock()
        aggregator = StatsAggregator(self._stats_collector)
        logger.info("Scheduled run %s started at %s", summary.run_id, now.isoformat())

        try:
            groups = await self._selector.due_groups(now)
        except Exception as exc:
            self._tier_failed(summary, Tier.GROUP, exc)
        else:
            for group in groups:
                unit, result = await self._attempt_group(group, summary.run_id)
                await self._advance(Tier.GROUP, group.id)
                await self._fold(summary, aggregator, unit, result, now)

        try:
            custom_units = await self._selector.due_custom_units(now)
        except Exception as exc:
            self._tier_failed(summary, Tier.CUSTOM_UNIT, exc)
        else:
            for schedule_unit in custom_units:
                unit, result = await self._attempt_custom_unit(schedule_unit, summary.run_id)
                await self._advance(Tier.CUSTOM_UNIT, schedule_unit.id)
                await self._fold(summary, aggregator, unit, result, now)

        summary.notifications_sent = await self._notifier.flush(aggregator.accumulator)
        summary.duration_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            "Scheduled run %s finished in %dms: tier1=%s tier2=%s notifications=%d",
            summary.run_id,
            summary.duration_ms,
            summary.tier1,
            summary.tier2,
            summary.notifications_sent,
        )
        return summary

    # --- per-item attempts (never raise) ---

    async def _attempt_group(
        self, group: ScheduleGroup, run_id: str
    ) -> tuple[WorkUnit | None, ProcessResult]:
        try:
            child_ids = await self._selector.inherit_unit_ids(group.id)
        except Exception as exc:
            logger.error("Failed to load keywords for config %s", group.id, exc_info=True)
            return None, ProcessResult(
                tier=Tier.GROUP,
                group_id=group.id,
                account_id=group.account_id,
                status=ProcessStatus.ERROR,
                error=str(exc),
            )

        unit = WorkUnit(
            tier=Tier.GROUP,
            account_id=group.account_id,
            group=group,
            unit_ids=child_ids,
            occurrence=occurrence_of(group.next_scheduled_at, group.last_scheduled_run_at),
        )
        return unit, await self._attempt(unit, run_id)

    async def _attempt_custom_unit(
        self, schedule_unit: ScheduleUnit, run_id: str
    ) -> tuple[WorkUnit | None, ProcessResult]:
        try:
            group = await self._selector.get_group(schedule_unit.group_id)
        except Exception as exc:
            logger.error(
                "Failed to load config %s for keyword %s",
                schedule_unit.group_id,
                schedule_unit.id,
                exc_info=True,
            )
            group, error = None, str(exc)
        else:
            error = f"Config {schedule_unit.group_id} not found"

        if group is None:
            return None, ProcessResult(
                tier=Tier.CUSTOM_UNIT,
                group_id=schedule_unit.group_id,
                unit_id=schedule_unit.id,
                account_id=schedule_unit.account_id,
                status=ProcessStatus.ERROR,
                error=error,
            )

        unit = WorkUnit(
            tier=Tier.CUSTOM_UNIT,
            account_id=schedule_unit.account_id,
            group=group,
            unit_ids=[schedule_unit.id],
            unit_id=schedule_unit.id,
            occurrence=occurrence_of(
                schedule_unit.next_scheduled_at, schedule_unit.last_scheduled_run_at
            ),
        )
        return unit, await self._attempt(unit, run_id)

    async def _attempt(self, unit: WorkUnit, run_id: str) -> ProcessResult:
        result = ProcessResult(
            tier=unit.tier,
            group_id=unit.group.id,
            unit_id=unit.unit_id,
            account_id=unit.account_id,
            status=ProcessStatus.ERROR,
        )
        try:
            outcome = await self._guard.evaluate(unit)
            if outcome.decision == GuardDecision.SKIP:
                result.status = ProcessStatus.SKIPPED
                result.reason = outcome.reason.value if outcome.reason else None
                return result
            if outcome.decision == GuardDecision.INSUFFICIENT:
                return await self._insufficient(result, outcome.required, outcome.available)

            result.idempotency_key = build_idempotency_key(
                unit.tier, unit.account_id, unit.target_id, unit.occurrence
            )
            saga_outcome = await self._saga.run(
                unit, outcome.credit_cost, result.idempotency_key, run_id
            )
        except InsufficientCreditsError as exc:
            # Balance dropped between the guard's read and the debit.
            return await self._insufficient(result, exc.required, exc.available)
        except ExecutionFailedError as exc:
            result.error = exc.message
            result.refunded = exc.refunded
            return result
        except Exception as exc:
            logger.error(
                "Unexpected error processing %s target=%s",
                unit.tier.value,
                unit.target_id,
                exc_info=True,
            )
            result.error = str(exc) or type(exc).__name__
            return result

        if saga_outcome.replayed:
            result.status = ProcessStatus.SKIPPED
            result.reason = SkipReason.ALREADY_CHARGED.value
            return result

        result.status = ProcessStatus.SUCCESS
        result.credits_charged = saga_outcome.credits_charged
        result.checks_performed = saga_outcome.checks_performed
        return result

    async def _insufficient(
        self, result: ProcessResult, required: int, available: int
    ) -> ProcessResult:
        result.status = ProcessStatus.INSUFFICIENT_CREDITS
        result.deficit = max(0, required - available)
        if result.tier == Tier.GROUP:
            await self._notifier.insufficient_credits(result, required, available)
        return result

    # --- advance and fold ---

    async def _advance(self, tier: Tier, target_id: str) -> None:
        try:
            if tier == Tier.GROUP:
                await self._advancer.advance_group(target_id, self._clock())
            else:
                await self._advancer.advance_unit(target_id, self._clock())
        except Exception:
            logger.error(
                "Failed to advance schedule for %s target=%s", tier.value, target_id, exc_info=True
            )

    async def _fold(
        self,
        summary: RunSummary,
        aggregator: StatsAggregator,
        unit: WorkUnit | None,
        result: ProcessResult,
        now: datetime,
    ) -> None:
        summary.record(result)
        logger.info(
            "%s config=%s keyword=%s account=%s -> %s reason=%s error=%s",
            result.tier.value,
            result.group_id,
            result.unit_id,
            result.account_id,
            result.status.value,
            result.reason,
            result.error,
        )
        if result.status != ProcessStatus.SUCCESS or unit is None:
            return
        await aggregator.record_success(unit, now)
        if self._delay_ms > 0:
            await self._sleep(self._delay_ms / 1000)

    @staticmethod
    def _tier_failed(summary: RunSummary, tier: Tier, exc: Exception) -> None:
        error = DueWorkSelectionError(tier.value, str(exc))
        logger.error("Aborting %s: %s", tier.value, error.message, exc_info=exc)
        summary.tier_errors[tier.value] = error.message
