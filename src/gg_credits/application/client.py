"""CreditLedgerClient: the ledger as seen by the scheduled run.

Binds one AsyncSession to CreditLedgerService so the run engine can call
``debit(account, amount, key, metadata)`` without knowing about sessions.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_credits.application.service import CreditLedgerService
from src.gg_credits.domain.models import CreditBalance, LedgerMovement
from src.gg_credits.domain.pricing import calculate_geogrid_cost

logger = logging.getLogger(__name__)


class CreditLedgerClient:
    def __init__(self, db: AsyncSession, service: CreditLedgerService | None = None) -> None:
        self._db = db
        self._service = service or CreditLedgerService()

    def credit_cost(self, point_count: int) -> int:
        return calculate_geogrid_cost(point_count)

    async def ensure_balance(self, account_id: str) -> None:
        await self._service.ensure_balance(self._db, account_id)

    async def get_balance(self, account_id: str) -> CreditBalance:
        return await self._service.get_balance(self._db, account_id)

    async def debit(
        self,
        account_id: str,
        amount: int,
        idempotency_key: str,
        metadata: dict[str, Any],
    ) -> LedgerMovement:
        return await self._service.debit(self._db, account_id, amount, idempotency_key, metadata)

    async def refund(
        self,
        account_id: str,
        amount: int,
        idempotency_key: str,
        metadata: dict[str, Any],
    ) -> LedgerMovement:
        """Refund a prior debit. A failure here leaves a charge with no work behind it."""
        try:
            return await self._service.refund(
                self._db, account_id, amount, idempotency_key, metadata
            )
        except Exception:
            logger.critical(
                "UNRECONCILED CHARGE: refund failed account=%s amount=%d debit_key=%s metadata=%s",
                account_id,
                amount,
                idempotency_key,
                metadata,
                exc_info=True,
            )
            raise
