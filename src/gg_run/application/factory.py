"""Wire the production collaborators for one scheduled run onto a session."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_credits.application.client import CreditLedgerClient
from src.gg_run.application.notifier import NotifierGateway
from src.gg_run.application.orchestrator import RunOrchestrator
from src.gg_run.domain.budget_guard import BudgetGuard
from src.gg_run.domain.saga import ExecutionSaga
from src.gg_run.infrastructure.notifications import SqlNotifier
from src.gg_run.infrastructure.rank_check_client import RankCheckClient
from src.gg_run.infrastructure.stats_collector import SqlStatsCollector
from src.gg_run.infrastructure.summary_generator import SqlSummaryGenerator
from src.gg_schedule.application.service import DueWorkSelector, ScheduleAdvancer


def build_orchestrator(db: AsyncSession) -> RunOrchestrator:
    ledger = CreditLedgerClient(db)
    return RunOrchestrator(
        selector=DueWorkSelector(db),
        advancer=ScheduleAdvancer(db),
        guard=BudgetGuard(ledger),
        saga=ExecutionSaga(ledger, RankCheckClient(), SqlSummaryGenerator(db)),
        stats_collector=SqlStatsCollector(db),
        notifier=NotifierGateway(SqlNotifier(db)),
    )
