"""CreditRepository — concrete implementation of CreditRepositoryProtocol.

Balance mutations lock the balance row (SELECT ... FOR UPDATE) and write the
ledger entry in the same transaction. The ledger has a UNIQUE constraint on
(account_id, idempotency_key); an INSERT that hits it returns no row and is
reported as LedgerConflictError so the caller can roll back and replay.

Transaction ownership: the CALLER (CreditLedgerService) commits or rolls back.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_common.enums import CreditType, LedgerTransactionType
from src.gg_common.errors import InsufficientCreditsError, LedgerConflictError
from src.gg_credits.domain.models import CreditBalance, CreditLedgerEntry

# ---------------------------------------------------------------------------
# SQL: credit_balances
# ---------------------------------------------------------------------------

# Create-if-absent. Unique PK on account_id makes concurrent runs safe.
_ENSURE_BALANCE_SQL = text("""
    INSERT INTO credit_balances (account_id, included_credits, purchased_credits)
    VALUES (:account_id, 0, 0)
    ON CONFLICT (account_id) DO NOTHING
""")

_GET_BALANCE_SQL = text("""
    SELECT account_id, included_credits, purchased_credits,
           included_credits_expire_at, updated_at
    FROM credit_balances
    WHERE account_id = :account_id
""")

_LOCK_BALANCE_SQL = text("""
    SELECT account_id, included_credits, purchased_credits,
           included_credits_expire_at, updated_at
    FROM credit_balances
    WHERE account_id = :account_id
    FOR UPDATE
""")

_DEBIT_BALANCE_SQL = text("""
    UPDATE credit_balances
    SET included_credits  = included_credits  - :included_debit,
        purchased_credits = purchased_credits - :purchased_debit,
        updated_at = NOW()
    WHERE account_id = :account_id
    RETURNING account_id, included_credits, purchased_credits,
              included_credits_expire_at, updated_at
""")

_CREDIT_PURCHASED_SQL = text("""
    INSERT INTO credit_balances (account_id, included_credits, purchased_credits)
    VALUES (:account_id, 0, :amount)
    ON CONFLICT (account_id) DO UPDATE
        SET purchased_credits = credit_balances.purchased_credits + :amount,
            updated_at = NOW()
    RETURNING account_id, included_credits, purchased_credits,
              included_credits_expire_at, updated_at
""")

# ---------------------------------------------------------------------------
# SQL: credit_ledger
# ---------------------------------------------------------------------------

_LEDGER_COLUMNS = """
    id, account_id, amount, balance_after, credit_type, transaction_type,
    feature_type, feature_metadata, idempotency_key, reference_key,
    description, created_at
"""

_INSERT_LEDGER_SQL = text(f"""
    INSERT INTO credit_ledger
        (account_id, amount, balance_after, credit_type, transaction_type,
         feature_type, feature_metadata, idempotency_key, reference_key, description)
    VALUES
        (:account_id, :amount, :balance_after, :credit_type, :transaction_type,
         :feature_type, CAST(:feature_metadata AS JSONB), :idempotency_key,
         :reference_key, :description)
    ON CONFLICT (account_id, idempotency_key) DO NOTHING
    RETURNING {_LEDGER_COLUMNS}
""")

_GET_ENTRY_BY_KEY_SQL = text(f"""
    SELECT {_LEDGER_COLUMNS}
    FROM credit_ledger
    WHERE account_id = :account_id AND idempotency_key = :idempotency_key
""")


def _row_to_balance(row: Any) -> CreditBalance:
    return CreditBalance(
        account_id=row.account_id,
        included_credits=row.included_credits,
        purchased_credits=row.purchased_credits,
        included_credits_expire_at=row.included_credits_expire_at,
        updated_at=row.updated_at,
    )


def _load_metadata(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        return dict(json.loads(value))
    return dict(value)


def _row_to_entry(row: Any) -> CreditLedgerEntry:
    return CreditLedgerEntry(
        id=row.id,
        account_id=row.account_id,
        amount=row.amount,
        balance_after=row.balance_after,
        credit_type=row.credit_type,
        transaction_type=row.transaction_type,
        idempotency_key=row.idempotency_key,
        feature_type=row.feature_type,
        reference_key=row.reference_key,
        feature_metadata=_load_metadata(row.feature_metadata),
        description=row.description,
        created_at=row.created_at,
    )


def _debit_credit_type(included_debit: int, purchased_debit: int) -> CreditType:
    if included_debit and purchased_debit:
        return CreditType.MIXED
    if included_debit:
        return CreditType.INCLUDED
    return CreditType.PURCHASED


class CreditRepository:
    """Concrete repository. All operations run inside the caller's transaction."""

    async def ensure_balance(self, db: AsyncSession, account_id: str) -> None:
        await db.execute(_ENSURE_BALANCE_SQL, {"account_id": account_id})

    async def get_balance(
        self, db: AsyncSession, account_id: str
    ) -> CreditBalance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"account_id": account_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def get_entry_by_key(
        self, db: AsyncSession, account_id: str, idempotency_key: str
    ) -> CreditLedgerEntry | None:
        result = await db.execute(
            _GET_ENTRY_BY_KEY_SQL,
            {"account_id": account_id, "idempotency_key": idempotency_key},
        )
        row = result.fetchone()
        return _row_to_entry(row) if row else None

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        idempotency_key: str,
        feature_type: str,
        metadata: dict[str, Any],
        description: str,
    ) -> CreditLedgerEntry:
        lock_result = await db.execute(_LOCK_BALANCE_SQL, {"account_id": account_id})
        locked = lock_result.fetchone()
        if locked is None:
            raise InsufficientCreditsError(amount, 0)
        balance = _row_to_balance(locked)
        if balance.total < amount:
            raise InsufficientCreditsError(amount, balance.total)

        # Included credits expire at month end, so they are spent first.
        included_debit = min(balance.included_credits, amount)
        purchased_debit = amount - included_debit

        update_result = await db.execute(
            _DEBIT_BALANCE_SQL,
            {
                "account_id": account_id,
                "included_debit": included_debit,
                "purchased_debit": purchased_debit,
            },
        )
        updated = _row_to_balance(update_result.fetchone())

        ledger_result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "account_id": account_id,
                "amount": -amount,
                "balance_after": updated.total,
                "credit_type": _debit_credit_type(included_debit, purchased_debit).value,
                "transaction_type": LedgerTransactionType.FEATURE_DEBIT.value,
                "feature_type": feature_type,
                "feature_metadata": json.dumps(
                    {
                        **metadata,
                        "included_debit": included_debit,
                        "purchased_debit": purchased_debit,
                    }
                ),
                "idempotency_key": idempotency_key,
                "reference_key": None,
                "description": description,
            },
        )
        ledger_row = ledger_result.fetchone()
        if ledger_row is None:
            raise LedgerConflictError(idempotency_key)
        return _row_to_entry(ledger_row)

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
    ) -> CreditLedgerEntry:
        balance_result = await db.execute(
            _CREDIT_PURCHASED_SQL, {"account_id": account_id, "amount": amount}
        )
        updated = _row_to_balance(balance_result.fetchone())

        ledger_result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "account_id": account_id,
                "amount": amount,
                "balance_after": updated.total,
                "credit_type": CreditType.PURCHASED.value,
                "transaction_type": transaction_type,
                "feature_type": feature_type,
                "feature_metadata": json.dumps(metadata),
                "idempotency_key": idempotency_key,
                "reference_key": reference_key,
                "description": description,
            },
        )
        ledger_row = ledger_result.fetchone()
        if ledger_row is None:
            raise LedgerConflictError(idempotency_key)
        return _row_to_entry(ledger_row)
