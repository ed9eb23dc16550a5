"""Domain models for gg_credits: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class CreditBalance:
    account_id: str
    included_credits: int = 0    # monthly grant, consumed first
    purchased_credits: int = 0   # never expire, refunds land here
    included_credits_expire_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total(self) -> int:
        return self.included_credits + self.purchased_credits


@dataclass
class CreditLedgerEntry:
    id: int                          # BIGSERIAL
    account_id: str
    amount: int                      # positive=credit, negative=debit
    balance_after: int               # total credits after this entry
    credit_type: str                 # CreditType value
    transaction_type: str            # LedgerTransactionType value
    idempotency_key: str
    feature_type: str | None = None
    reference_key: str | None = None  # refund → key of the debit it compensates
    feature_metadata: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class LedgerMovement:
    """Result of a debit/refund. ``replayed`` means the key already existed and no funds moved."""

    entry: CreditLedgerEntry
    replayed: bool = False
