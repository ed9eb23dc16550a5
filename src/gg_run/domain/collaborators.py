"""Collaborator Protocols: the run engine's view of the outside world.

Concrete adapters live in src/gg_credits (ledger) and src/gg_run/infrastructure.
Tests pass fakes that satisfy these structurally.
"""

from datetime import datetime
from typing import Any, Protocol

from src.gg_credits.domain.models import CreditBalance, LedgerMovement
from src.gg_run.domain.models import GridStats
from src.gg_schedule.domain.models import ScheduleGroup


class LedgerClientProtocol(Protocol):
    def credit_cost(self, point_count: int) -> int: ...

    async def ensure_balance(self, account_id: str) -> None: ...

    async def get_balance(self, account_id: str) -> CreditBalance: ...

    async def debit(
        self, account_id: str, amount: int, idempotency_key: str, metadata: dict[str, Any]
    ) -> LedgerMovement: ...

    async def refund(
        self, account_id: str, amount: int, idempotency_key: str, metadata: dict[str, Any]
    ) -> LedgerMovement: ...


class RankCheckExecutorProtocol(Protocol):
    async def execute(self, group: ScheduleGroup, unit_ids: list[str]) -> int: ...


class SummaryGeneratorProtocol(Protocol):
    async def generate(self, group: ScheduleGroup, account_id: str, force: bool) -> None: ...


class StatsCollectorProtocol(Protocol):
    async def compute(
        self, account_id: str, group: ScheduleGroup, unit_ids: list[str], as_of: datetime
    ) -> GridStats: ...

    def merge(self, a: GridStats, b: GridStats) -> GridStats: ...


class NotifierProtocol(Protocol):
    async def notify(self, account_id: str, event_type: str, payload: dict[str, Any]) -> None: ...
