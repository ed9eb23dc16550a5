"""CreditLedgerService — transactional composition over CreditRepository.

Every mutating call owns exactly one transaction: commit on success, rollback
on any error. Debit and refund are idempotent on ``(account_id, key)``:

- a key that already has a ledger entry returns it with ``replayed=True``
  and moves no funds;
- a concurrent writer racing us on the same key surfaces as
  LedgerConflictError inside the transaction, which is rolled back and then
  answered the same way.

Refunds are stored under ``"<debit key>:refund"`` with ``reference_key`` set to
the debit key, so each refund is unambiguously paired with its debit.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_common.enums import FeatureType, LedgerTransactionType
from src.gg_common.errors import InvalidCreditAmountError, LedgerConflictError
from src.gg_credits.domain.models import CreditBalance, CreditLedgerEntry, LedgerMovement
from src.gg_credits.domain.repository import CreditRepositoryProtocol
from src.gg_credits.infrastructure.persistence import CreditRepository

logger = logging.getLogger(__name__)

REFUND_KEY_SUFFIX = ":refund"


def refund_key_for(debit_key: str) -> str:
    return f"{debit_key}{REFUND_KEY_SUFFIX}"


class CreditLedgerService:
    def __init__(self, repo: CreditRepositoryProtocol | None = None) -> None:
        self._repo: CreditRepositoryProtocol = repo or CreditRepository()

    async def ensure_balance(self, db: AsyncSession, account_id: str) -> None:
        try:
            await self._repo.ensure_balance(db, account_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def get_balance(self, db: AsyncSession, account_id: str) -> CreditBalance:
        try:
            balance = await self._repo.get_balance(db, account_id)
        except Exception:
            await db.rollback()
            raise
        if balance is None:
            return CreditBalance(account_id=account_id)
        return balance

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        idempotency_key: str,
        metadata: dict[str, Any] | None = None,
        feature_type: str = FeatureType.GEO_GRID_SCHEDULE.value,
        description: str = "Scheduled geo-grid check",
    ) -> LedgerMovement:
        if amount <= 0:
            raise InvalidCreditAmountError(amount)

        try:
            existing = await self._repo.get_entry_by_key(db, account_id, idempotency_key)
            if existing is not None:
                await db.commit()
                logger.info("Debit idempotency hit: account=%s key=%s", account_id, idempotency_key)
                return LedgerMovement(entry=existing, replayed=True)

            entry = await self._repo.debit(
                db,
                account_id,
                amount,
                idempotency_key,
                feature_type,
                metadata or {},
                description,
            )
            await db.commit()
        except LedgerConflictError:
            await db.rollback()
            return await self._replay(db, account_id, idempotency_key)
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Debited %d credits: account=%s key=%s balance_after=%d",
            amount,
            account_id,
            idempotency_key,
            entry.balance_after,
        )
        return LedgerMovement(entry=entry)

    async def refund(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        debit_key: str,
        metadata: dict[str, Any] | None = None,
        feature_type: str = FeatureType.GEO_GRID_SCHEDULE.value,
        description: str | None = None,
    ) -> LedgerMovement:
        """Compensating credit for a failed feature operation.

        Refunds go to purchased credits so they never expire.
        """
        if amount <= 0:
            raise InvalidCreditAmountError(amount)

        refund_key = refund_key_for(debit_key)
        try:
            existing = await self._repo.get_entry_by_key(db, account_id, refund_key)
            if existing is not None:
                await db.commit()
                logger.info("Refund idempotency hit: account=%s key=%s", account_id, refund_key)
                return LedgerMovement(entry=existing, replayed=True)

            entry = await self._repo.credit_purchased(
                db,
                account_id,
                amount,
                refund_key,
                LedgerTransactionType.FEATURE_REFUND.value,
                debit_key,
                feature_type,
                metadata or {},
                description or f"Refund for failed {feature_type} operation",
            )
            await db.commit()
        except LedgerConflictError:
            await db.rollback()
            return await self._replay(db, account_id, refund_key)
        except Exception:
            await db.rollback()
            raise

        logger.info("Refunded %d credits: account=%s key=%s", amount, account_id, refund_key)
        return LedgerMovement(entry=entry)

    async def _replay(
        self, db: AsyncSession, account_id: str, idempotency_key: str
    ) -> LedgerMovement:
        try:
            entry: CreditLedgerEntry | None = await self._repo.get_entry_by_key(
                db, account_id, idempotency_key
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if entry is None:
            # Conflict reported but the winning row is not visible: let the caller see it.
            raise LedgerConflictError(idempotency_key)
        logger.info(
            "Ledger race resolved as replay: account=%s key=%s", account_id, idempotency_key
        )
        return LedgerMovement(entry=entry, replayed=True)
