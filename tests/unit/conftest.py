"""Unit-test fakes for the scheduled-run engine.

InMemoryLedger honours the same contract as CreditLedgerClient: idempotent
debit/refund by key, refunds stored under ``<key>:refund``, included credits
spent before purchased.
"""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.gg_common.enums import ScheduleMode
from src.gg_common.errors import InsufficientCreditsError
from src.gg_credits.domain.models import CreditBalance, CreditLedgerEntry, LedgerMovement
from src.gg_run.domain.models import GridStats
from src.gg_run.domain.stats import merge_stats
from src.gg_schedule.domain.models import ScheduleGroup, ScheduleUnit

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)


def make_group(
    group_id: str = "cfg-1",
    account_id: str = "acct-1",
    points: int = 5,
    target: str | None = "place-1",
    enabled: bool = True,
    next_at: datetime | None = NOW,
) -> ScheduleGroup:
    return ScheduleGroup(
        id=group_id,
        account_id=account_id,
        target_place_id=target,
        center_lat=40.0,
        center_lng=-74.0,
        radius_miles=3.0,
        check_points=[f"p{i}" for i in range(points)],
        is_enabled=enabled,
        schedule_frequency="daily",
        next_scheduled_at=next_at,
    )


def make_unit(
    unit_id: str = "kw-1",
    group_id: str = "cfg-1",
    account_id: str = "acct-1",
    next_at: datetime | None = NOW,
) -> ScheduleUnit:
    return ScheduleUnit(
        id=unit_id,
        group_id=group_id,
        account_id=account_id,
        keyword_id=f"keyword-{unit_id}",
        schedule_mode=ScheduleMode.CUSTOM,
        schedule_frequency="weekly",
        next_scheduled_at=next_at,
    )


class InMemoryLedger:
    def __init__(self, credit_cost: int | None = None) -> None:
        self.balances: dict[str, CreditBalance] = {}
        self.entries: dict[tuple[str, str], CreditLedgerEntry] = {}
        self.calls: list[tuple[str, str, int, str]] = []
        self._fixed_cost = credit_cost
        self._next_id = 1
        self.fail_refunds = False

    def fund(self, account_id: str, included: int = 0, purchased: int = 0) -> None:
        self.balances[account_id] = CreditBalance(account_id, included, purchased)

    def credit_cost(self, point_count: int) -> int:
        if self._fixed_cost is not None:
            return self._fixed_cost
        return 10 + point_count

    async def ensure_balance(self, account_id: str) -> None:
        self.balances.setdefault(account_id, CreditBalance(account_id))

    async def get_balance(self, account_id: str) -> CreditBalance:
        return self.balances.get(account_id, CreditBalance(account_id))

    def total(self, account_id: str) -> int:
        return self.balances[account_id].total

    def _entry(self, account_id: str, amount: int, key: str, kind: str, ref: str | None):
        entry = CreditLedgerEntry(
            id=self._next_id,
            account_id=account_id,
            amount=amount,
            balance_after=self.balances[account_id].total,
            credit_type="purchased",
            transaction_type=kind,
            idempotency_key=key,
            reference_key=ref,
        )
        self._next_id += 1
        self.entries[(account_id, key)] = entry
        return entry

    async def debit(
        self, account_id: str, amount: int, idempotency_key: str, metadata: dict[str, Any]
    ) -> LedgerMovement:
        self.calls.append(("debit", account_id, amount, idempotency_key))
        existing = self.entries.get((account_id, idempotency_key))
        if existing is not None:
            return LedgerMovement(existing, replayed=True)
        balance = self.balances.get(account_id)
        if balance is None or balance.total < amount:
            raise InsufficientCreditsError(amount, balance.total if balance else 0)
        from_included = min(balance.included_credits, amount)
        balance.included_credits -= from_included
        balance.purchased_credits -= amount - from_included
        return LedgerMovement(
            self._entry(account_id, -amount, idempotency_key, "feature_debit", None)
        )

    async def refund(
        self, account_id: str, amount: int, idempotency_key: str, metadata: dict[str, Any]
    ) -> LedgerMovement:
        self.calls.append(("refund", account_id, amount, idempotency_key))
        if self.fail_refunds:
            raise ConnectionError("ledger unavailable")
        refund_key = f"{idempotency_key}:refund"
        existing = self.entries.get((account_id, refund_key))
        if existing is not None:
            return LedgerMovement(existing, replayed=True)
        self.balances[account_id].purchased_credits += amount
        return LedgerMovement(
            self._entry(account_id, amount, refund_key, "feature_refund", idempotency_key)
        )

    def debits(self) -> list[tuple[str, str, int, str]]:
        return [c for c in self.calls if c[0] == "debit"]

    def refunds(self) -> list[tuple[str, str, int, str]]:
        return [c for c in self.calls if c[0] == "refund"]


class FakeStatsCollector:
    """One point per keyword per check point, all in the top 3."""

    def __init__(self) -> None:
        self.compute = AsyncMock(side_effect=self._compute)

    async def _compute(
        self, account_id: str, group: ScheduleGroup, unit_ids: list[str], as_of: datetime
    ) -> GridStats:
        points = group.point_count * len(unit_ids)
        return GridStats(
            points_checked=points,
            keywords_checked=len(unit_ids),
            top3=points,
            top10=points,
            top20=points,
            groups_checked=1,
        )

    def merge(self, a: GridStats, b: GridStats) -> GridStats:
        return merge_stats(a, b)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def executor() -> AsyncMock:
    mock = AsyncMock()
    mock.execute.side_effect = lambda group, unit_ids: group.point_count * len(unit_ids)
    return mock


@pytest.fixture
def summary_generator() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def stats_collector() -> FakeStatsCollector:
    return FakeStatsCollector()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture(name="make_group")
def make_group_fixture():
    return make_group


@pytest.fixture(name="make_unit")
def make_unit_fixture():
    return make_unit


@pytest.fixture
def ledger_factory():
    return InMemoryLedger
