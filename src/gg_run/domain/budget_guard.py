"""Budget Guard — decides, before any side effect, whether a unit may run.

Order of checks:
  0. validation: no target / disabled / no check points
  1. Tier 1 with zero inherit-mode children
  2. credit cost = f(point_count)
  3. ensure a balance row exists (idempotent upsert)
  4. balance.total < credit cost -> insufficient
  5. point_count * children * unit price > ceiling -> skip
  6. proceed

The only write is step 3. Nothing is ever debited here.
"""

import logging
from collections.abc import Callable
from decimal import Decimal

from config.settings import settings
from src.gg_common.enums import SkipReason, Tier
from src.gg_run.domain.collaborators import LedgerClientProtocol
from src.gg_run.domain.models import GuardOutcome, WorkUnit

logger = logging.getLogger(__name__)


def estimate_external_cost(point_count: int, child_count: int, unit_cost: Decimal) -> Decimal:
    return Decimal(point_count) * Decimal(child_count) * unit_cost


class BudgetGuard:
    def __init__(
        self,
        ledger: LedgerClientProtocol,
        credit_cost: Callable[[int], int] | None = None,
        unit_cost_usd: Decimal | None = None,
        ceiling_usd: Decimal | None = None,
    ) -> None:
        self._ledger = ledger
        self._credit_cost = credit_cost or ledger.credit_cost
        self._unit_cost = (
            unit_cost_usd if unit_cost_usd is not None else settings.RANK_CHECK_UNIT_COST_USD
        )
        self._ceiling = ceiling_usd if ceiling_usd is not None else settings.MAX_COST_PER_RUN_USD

    async def evaluate(self, unit: WorkUnit) -> GuardOutcome:
        group = unit.group
        if not group.target_place_id:
            return GuardOutcome.skip(SkipReason.NO_TARGET)
        if not group.is_enabled:
            return GuardOutcome.skip(SkipReason.DISABLED)
        if unit.point_count == 0:
            return GuardOutcome.skip(SkipReason.NO_CHECK_POINTS)

        child_count = unit.child_count if unit.tier == Tier.GROUP else 1
        if child_count == 0:
            return GuardOutcome.skip(SkipReason.NO_ELIGIBLE_CHILDREN)

        credit_cost = self._credit_cost(unit.point_count)

        await self._ledger.ensure_balance(unit.account_id)
        balance = await self._ledger.get_balance(unit.account_id)
        if balance.total < credit_cost:
            logger.info(
                "Insufficient credits: account=%s target=%s required=%d available=%d",
                unit.account_id,
                unit.target_id,
                credit_cost,
                balance.total,
            )
            return GuardOutcome.insufficient(credit_cost, balance.total)

        estimated = estimate_external_cost(unit.point_count, child_count, self._unit_cost)
        if estimated > self._ceiling:
            logger.warning(
                "Cost ceiling exceeded: account=%s target=%s estimated=$%s ceiling=$%s "
                "(points=%d keywords=%d)",
                unit.account_id,
                unit.target_id,
                estimated,
                self._ceiling,
                unit.point_count,
                child_count,
            )
            return GuardOutcome.skip(SkipReason.COST_CEILING_EXCEEDED, credit_cost, estimated)

        return GuardOutcome.proceed(credit_cost, estimated)
