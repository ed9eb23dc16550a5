"""Execution Saga: debit -> execute -> (refund on failure) -> summary.

1. Debit ``credit_cost`` under the unit's idempotency key. A replayed key means
   this due occurrence was already charged by an earlier invocation; the saga
   stops there and reports ``replayed``.
2. Execute the rank check for the unit's keyword ids.
3. If execute raises, refund the same amount under the same key (the ledger
   stores it as ``<key>:refund``) and raise ExecutionFailedError carrying the
   original message. A refund failure is reported by the ledger client and
   never replaces the original error.
4. After a run with at least one check, force-regenerate the daily summary.
   Summary failures are logged only.

Debit errors propagate unchanged so the caller can classify them.
"""

import logging
from typing import Any

from src.gg_common.errors import ExecutionFailedError
from src.gg_run.domain.collaborators import (
    LedgerClientProtocol,
    RankCheckExecutorProtocol,
    SummaryGeneratorProtocol,
)
from src.gg_run.domain.models import SagaOutcome, WorkUnit

logger = logging.getLogger(__name__)


class ExecutionSaga:
    def __init__(
        self,
        ledger: LedgerClientProtocol,
        executor: RankCheckExecutorProtocol,
        summary_generator: SummaryGeneratorProtocol,
    ) -> None:
        self._ledger = ledger
        self._executor = executor
        self._summary_generator = summary_generator

    async def run(
        self, unit: WorkUnit, credit_cost: int, idempotency_key: str, run_id: str
    ) -> SagaOutcome:
        metadata = self._metadata(unit, run_id)

        movement = await self._ledger.debit(
            unit.account_id, credit_cost, idempotency_key, metadata
        )
        if movement.replayed:
            logger.info(
                "Occurrence already charged, not executing: account=%s key=%s",
                unit.account_id,
                idempotency_key,
            )
            return SagaOutcome(idempotency_key=idempotency_key, replayed=True)

        try:
            checks_performed = await self._executor.execute(unit.group, list(unit.unit_ids))
        except Exception as exc:
            refunded = await self._compensate(unit, credit_cost, idempotency_key, metadata, exc)
            raise ExecutionFailedError(str(exc) or type(exc).__name__, refunded) from exc

        if checks_performed >= 1:
            await self._regenerate_summary(unit)

        return SagaOutcome(
            idempotency_key=idempotency_key,
            credits_charged=credit_cost,
            checks_performed=checks_performed,
        )

    async def _compensate(
        self,
        unit: WorkUnit,
        credit_cost: int,
        idempotency_key: str,
        metadata: dict[str, Any],
        cause: Exception,
    ) -> bool:
        logger.warning(
            "Rank check failed, refunding %d credits: account=%s key=%s error=%s",
            credit_cost,
            unit.account_id,
            idempotency_key,
            cause,
        )
        try:
            await self._ledger.refund(
                unit.account_id,
                credit_cost,
                idempotency_key,
                {**metadata, "reason": "execution_failed", "error": str(cause)},
            )
        except Exception as refund_exc:
            # Ledger client already raised the unreconciled-charge alarm.
            logger.error(
                "Refund failed after rank-check error: key=%s refund_error=%s",
                idempotency_key,
                refund_exc,
            )
            return False
        return True

    async def _regenerate_summary(self, unit: WorkUnit) -> None:
        try:
            await self._summary_generator.generate(unit.group, unit.account_id, force=True)
        except Exception:
            logger.error(
                "Summary generation failed: account=%s config=%s",
                unit.account_id,
                unit.group.id,
                exc_info=True,
            )

    @staticmethod
    def _metadata(unit: WorkUnit, run_id: str) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "tier": unit.tier.value,
            "config_id": unit.group.id,
            "tracked_keyword_ids": list(unit.unit_ids),
            "check_points": unit.point_count,
            "run_id": run_id,
            "occurrence": unit.occurrence,
        }
        if unit.unit_id is not None:
            metadata["tracked_keyword_id"] = unit.unit_id
        return metadata
