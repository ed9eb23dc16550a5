"""Stats Aggregator — per-account GridStats merged across both tiers.

Merge is a field-wise sum, so neither tier order nor unit order changes an
account's final totals. A failed compute for one unit leaves everything
already accumulated in place.
"""

import logging
from collections.abc import Callable, Iterator
from datetime import datetime

from src.gg_run.domain.collaborators import StatsCollectorProtocol
from src.gg_run.domain.models import GridStats, WorkUnit

logger = logging.getLogger(__name__)


def merge_stats(a: GridStats, b: GridStats) -> GridStats:
    return a.merge(b)


class AccountStatsAccumulator:
    def __init__(self) -> None:
        self._by_account: dict[str, GridStats] = {}

    def add(
        self,
        account_id: str,
        stats: GridStats,
        merge: Callable[[GridStats, GridStats], GridStats] = merge_stats,
    ) -> None:
        current = self._by_account.get(account_id, GridStats())
        self._by_account[account_id] = merge(current, stats)

    def get(self, account_id: str) -> GridStats | None:
        return self._by_account.get(account_id)

    def items(self) -> Iterator[tuple[str, GridStats]]:
        return iter(self._by_account.items())

    def __len__(self) -> int:
        return len(self._by_account)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._by_account


class StatsAggregator:
    def __init__(
        self,
        collector: StatsCollectorProtocol,
        accumulator: AccountStatsAccumulator | None = None,
    ) -> None:
        self._collector = collector
        self.accumulator = accumulator if accumulator is not None else AccountStatsAccumulator()

    async def record_success(self, unit: WorkUnit, as_of: datetime) -> bool:
        """Compute and fold stats for one successful unit. Returns False if compute failed."""
        try:
            stats = await self._collector.compute(
                unit.account_id, unit.group, list(unit.unit_ids), as_of
            )
        except Exception:
            logger.error(
                "Stats computation failed, keeping existing totals: account=%s target=%s",
                unit.account_id,
                unit.target_id,
                exc_info=True,
            )
            return False

        self.accumulator.add(unit.account_id, stats, self._collector.merge)
        return True
