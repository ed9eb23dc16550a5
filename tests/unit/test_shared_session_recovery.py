"""A run shares one AsyncSession across every SQL collaborator.

PostgreSQL aborts the whole transaction after a failed statement and rejects
everything until a rollback. These tests wire the real SQL collaborators onto
a session that behaves that way and check that one failed read never costs a
later unit its schedule advance.
"""

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.gg_common.enums import ProcessStatus
from src.gg_credits.application.client import CreditLedgerClient
from src.gg_run.application.notifier import NotifierGateway
from src.gg_run.application.orchestrator import RunOrchestrator
from src.gg_run.domain.budget_guard import BudgetGuard
from src.gg_run.domain.saga import ExecutionSaga
from src.gg_run.infrastructure.stats_collector import SqlStatsCollector
from src.gg_schedule.application.service import DueWorkSelector, ScheduleAdvancer


class AbortingSession:
    """Fails statements matching ``fails`` and stays aborted until rollback()."""

    def __init__(
        self,
        fails: Callable[[str], bool],
        rows: list[tuple[str, list[Any]]],
    ) -> None:
        self._fails = fails
        self._rows = rows
        self.aborted = False
        self.statements: list[str] = []
        self.rollbacks = 0

    async def execute(self, stmt: Any, params: Any = None) -> MagicMock:
        sql = str(stmt)
        if self.aborted:
            raise RuntimeError("current transaction is aborted")
        if self._fails(sql):
            self.aborted = True
            raise RuntimeError("canceling statement due to statement timeout")
        self.statements.append(sql)
        result = MagicMock()
        result.rowcount = 1
        result.fetchone.return_value = None
        result.scalars.return_value.all.return_value = next(
            (found for needle, found in self._rows if needle in sql), []
        )
        return result

    async def commit(self) -> None:
        if self.aborted:
            raise RuntimeError("current transaction is aborted")

    async def rollback(self) -> None:
        self.aborted = False
        self.rollbacks += 1

    def advanced(self, table: str) -> int:
        return sum(1 for sql in self.statements if sql.startswith(f"UPDATE {table} "))


def _config_row(config_id: str) -> SimpleNamespace:
    return SimpleNamespace(
        id=config_id,
        account_id="acct-1",
        target_place_id="place-1",
        center_lat=40.0,
        center_lng=-74.0,
        radius_miles=3.0,
        check_points=["center", "n", "s"],
        is_enabled=True,
        schedule_frequency="daily",
        schedule_day_of_week=None,
        schedule_day_of_month=None,
        schedule_hour=9,
        next_scheduled_at=None,
        last_scheduled_run_at=None,
    )


DUE_CONFIGS = [
    ("gg_tracked_keywords.config_id = ", ["kw-1"]),
    ("FROM gg_configs", [_config_row("cfg-1"), _config_row("cfg-2")]),
]


@pytest.fixture
def build(executor, summary_generator, notifier, now):
    def _build(db: AbortingSession, ledger) -> RunOrchestrator:
        return RunOrchestrator(
            selector=DueWorkSelector(db),
            advancer=ScheduleAdvancer(db),
            guard=BudgetGuard(ledger),
            saga=ExecutionSaga(ledger, executor, summary_generator),
            stats_collector=SqlStatsCollector(db),
            notifier=NotifierGateway(notifier),
            inter_unit_delay_ms=0,
            clock=lambda: now,
        )

    return _build


class TestSharedSessionRecovery:
    async def test_stats_failure_does_not_cost_next_unit_its_advance(
        self, build, ledger
    ) -> None:
        db = AbortingSession(lambda sql: "FROM gg_checks" in sql, DUE_CONFIGS)
        ledger.fund("acct-1", included=100)

        summary = await build(db, ledger).run()

        assert [r.status for r in summary.details] == [
            ProcessStatus.SUCCESS,
            ProcessStatus.SUCCESS,
        ]
        assert db.advanced("gg_configs") == 2
        assert db.aborted is False

    async def test_balance_read_failure_still_advances_the_unit(self, build) -> None:
        db = AbortingSession(
            lambda sql: "FROM credit_balances" in sql and "FOR UPDATE" not in sql,
            DUE_CONFIGS,
        )

        summary = await build(db, CreditLedgerClient(db)).run()

        assert [r.status for r in summary.details] == [ProcessStatus.ERROR, ProcessStatus.ERROR]
        assert db.advanced("gg_configs") == 2

    async def test_tier1_selection_failure_leaves_tier2_running(
        self, build, ledger
    ) -> None:
        db = AbortingSession(lambda sql: "FROM gg_configs" in sql, [])

        summary = await build(db, ledger).run()

        assert set(summary.tier_errors) == {"tier1"}
        assert db.rollbacks == 1


class TestSessionFake:
    async def test_stays_aborted_until_rollback(self) -> None:
        db = AbortingSession(lambda sql: sql == "boom", [])
        with pytest.raises(RuntimeError):
            await db.execute("boom")
        with pytest.raises(RuntimeError):
            await db.execute("SELECT 1")
        await db.rollback()
        await db.execute("SELECT 1")
        assert db.statements == ["SELECT 1"]
