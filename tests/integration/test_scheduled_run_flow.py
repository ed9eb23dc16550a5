"""Integration tests for a scheduled run against PostgreSQL.

Run: pytest -m integration tests/integration/test_scheduled_run_flow.py -v
Pre-condition: PG reachable at DATABASE_URL and ``alembic upgrade head`` applied.

The rank-check service is replaced by an AsyncMock; ledger, schedule, summary,
stats and notification writes all hit the real tables. The selector is scoped
to the seeded account so rows left by other tests are never touched.
"""

import json
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_common.enums import ProcessStatus
from src.gg_common.errors import RankCheckExecutionError
from src.gg_credits.application.client import CreditLedgerClient
from src.gg_run.application.notifier import NotifierGateway
from src.gg_run.application.orchestrator import RunOrchestrator
from src.gg_run.domain.budget_guard import BudgetGuard
from src.gg_run.domain.saga import ExecutionSaga
from src.gg_run.infrastructure.notifications import SqlNotifier
from src.gg_run.infrastructure.stats_collector import SqlStatsCollector
from src.gg_run.infrastructure.summary_generator import SqlSummaryGenerator
from src.gg_schedule.application.service import DueWorkSelector, ScheduleAdvancer
from src.gg_schedule.domain.models import ScheduleGroup, ScheduleUnit

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


class AccountScopedSelector(DueWorkSelector):
    def __init__(self, db: AsyncSession, account_id: str) -> None:
        super().__init__(db)
        self._account_id = account_id

    async def due_groups(self, now: datetime) -> list[ScheduleGroup]:
        return [g for g in await super().due_groups(now) if g.account_id == self._account_id]

    async def due_custom_units(self, now: datetime) -> list[ScheduleUnit]:
        units = await super().due_custom_units(now)
        return [u for u in units if u.account_id == self._account_id]


def _orchestrator(db: AsyncSession, account_id: str, executor: AsyncMock) -> RunOrchestrator:
    ledger = CreditLedgerClient(db)
    return RunOrchestrator(
        selector=AccountScopedSelector(db, account_id),
        advancer=ScheduleAdvancer(db),
        guard=BudgetGuard(ledger),
        saga=ExecutionSaga(ledger, executor, SqlSummaryGenerator(db)),
        stats_collector=SqlStatsCollector(db),
        notifier=NotifierGateway(SqlNotifier(db)),
        inter_unit_delay_ms=0,
    )


def _executor() -> AsyncMock:
    mock = AsyncMock()
    mock.execute.side_effect = lambda group, unit_ids: group.point_count * len(unit_ids)
    return mock


async def _balance(db: AsyncSession, account_id: str) -> int:
    row = (
        await db.execute(
            text("""
                SELECT included_credits + purchased_credits AS total
                FROM credit_balances WHERE account_id = :account_id
            """),
            {"account_id": account_id},
        )
    ).fetchone()
    return row.total


async def _ledger(db: AsyncSession, account_id: str) -> list:  # type: ignore[type-arg]
    return (
        await db.execute(
            text("""
                SELECT amount, transaction_type, idempotency_key, reference_key
                FROM credit_ledger WHERE account_id = :account_id ORDER BY id
            """),
            {"account_id": account_id},
        )
    ).fetchall()


async def _notifications(db: AsyncSession, account_id: str) -> list:  # type: ignore[type-arg]
    return (
        await db.execute(
            text("SELECT type, payload FROM notifications WHERE account_id = :account_id"),
            {"account_id": account_id},
        )
    ).fetchall()


class TestFundedRun:
    async def test_debits_advances_and_notifies(self, db: AsyncSession, seed) -> None:
        seeded = await seed(included=100)
        executor = _executor()

        summary = await _orchestrator(db, seeded.account_id, executor).run()

        statuses = [r.status for r in summary.details]
        assert statuses == [ProcessStatus.SUCCESS, ProcessStatus.SUCCESS]
        # 10 base + 3 points, once per unit
        assert await _balance(db, seeded.account_id) == 74
        entries = await _ledger(db, seeded.account_id)
        assert [e.amount for e in entries] == [-13, -13]
        assert entries[0].idempotency_key.startswith(
            f"geo_grid_schedule:tier1:{seeded.account_id}:{seeded.config_id}:"
        )

        executed = [c.args[1] for c in executor.execute.await_args_list]
        assert sorted(executed[0]) == sorted(seeded.inherit_ids)
        assert executed[1] == [seeded.custom_id]

        config = (
            await db.execute(
                text("""
                    SELECT last_scheduled_run_at, next_scheduled_at
                    FROM gg_configs WHERE id = :id
                """),
                {"id": seeded.config_id},
            )
        ).fetchone()
        assert config.last_scheduled_run_at is not None
        assert config.next_scheduled_at > config.last_scheduled_run_at

        notices = await _notifications(db, seeded.account_id)
        assert [n.type for n in notices] == ["geogrid_batch_completed"]

    async def test_second_run_finds_nothing_due(self, db: AsyncSession, seed) -> None:
        seeded = await seed(included=100)
        await _orchestrator(db, seeded.account_id, _executor()).run()

        again = await _orchestrator(db, seeded.account_id, _executor()).run()

        assert again.details == []
        assert len(await _ledger(db, seeded.account_id)) == 2


class TestCompensation:
    async def test_failed_check_is_refunded(self, db: AsyncSession, seed) -> None:
        seeded = await seed(included=100, custom_keyword=False)
        executor = AsyncMock()
        executor.execute.side_effect = RankCheckExecutionError("service returned 502")

        summary = await _orchestrator(db, seeded.account_id, executor).run()

        result = summary.details[0]
        assert result.status == ProcessStatus.ERROR
        assert result.refunded is True
        assert await _balance(db, seeded.account_id) == 100
        debit, refund = await _ledger(db, seeded.account_id)
        assert refund.transaction_type == "feature_refund"
        assert refund.amount == 13
        assert refund.idempotency_key == f"{debit.idempotency_key}:refund"
        assert refund.reference_key == debit.idempotency_key


class TestInsufficientCredits:
    async def test_underfunded_config_is_skipped_and_notified(
        self, db: AsyncSession, seed
    ) -> None:
        seeded = await seed(purchased=5, custom_keyword=False)
        executor = _executor()

        summary = await _orchestrator(db, seeded.account_id, executor).run()

        result = summary.details[0]
        assert result.status == ProcessStatus.INSUFFICIENT_CREDITS
        assert result.deficit == 8
        executor.execute.assert_not_awaited()
        assert await _ledger(db, seeded.account_id) == []
        notices = await _notifications(db, seeded.account_id)
        assert [n.type for n in notices] == ["credit_check_skipped"]
        assert json.loads(notices[0].payload)["required"] == 13


class TestCronEndpoint:
    async def test_rejects_without_secret(self, client: AsyncClient) -> None:
        resp = await client.get("/api/cron/process-geogrid-schedules")
        assert resp.status_code in (401, 500)
