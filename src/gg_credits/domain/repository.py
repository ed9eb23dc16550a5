"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_credits.domain.models import CreditBalance, CreditLedgerEntry


class CreditRepositoryProtocol(Protocol):
    async def ensure_balance(self, db: AsyncSession, account_id: str) -> None: ...

    async def get_balance(
        self, db: AsyncSession, account_id: str
    ) -> CreditBalance | None: ...

    async def get_entry_by_key(
        self, db: AsyncSession, account_id: str, idempotency_key: str
    ) -> CreditLedgerEntry | None: ...

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        idempotency_key: str,
        feature_type: str,
        metadata: dict[str, Any],
        description: str,
    ) -> CreditLedgerEntry: ...

    async def credit_purchased(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        idempotency_key: str,
        transaction_type: str,
        reference_key: str | None,
        feature_type: str | None,
        metadata: dict[str, Any],
        description: str,
    ) -> CreditLedgerEntry: ...
