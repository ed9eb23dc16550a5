"""SqlStatsCollector — GridStats from the rank-check rows a run just wrote.

Buckets are cumulative, matching how results are shown to accounts:
top10 includes top3, top20 includes top10. ``not_found`` counts the
``none`` bucket.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_run.domain.models import GridStats
from src.gg_run.domain.stats import merge_stats
from src.gg_schedule.domain.models import ScheduleGroup

_COMPUTE_SQL = text("""
    SELECT
        COUNT(*)                                                          AS points_checked,
        COUNT(DISTINCT tracked_keyword_id)                                AS keywords_checked,
        COUNT(*) FILTER (WHERE position_bucket = 'top3')                  AS top3,
        COUNT(*) FILTER (WHERE position_bucket IN ('top3', 'top10'))      AS top10,
        COUNT(*) FILTER (WHERE position_bucket IN ('top3', 'top10', 'top20')) AS top20,
        COUNT(*) FILTER (WHERE position_bucket = 'none')                  AS not_found,
        COUNT(DISTINCT config_id)                                         AS groups_checked
    FROM gg_checks
    WHERE account_id = :account_id
      AND config_id = :config_id
      AND tracked_keyword_id = ANY(:unit_ids)
      AND checked_at >= :as_of
""")


class SqlStatsCollector:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def compute(
        self, account_id: str, group: ScheduleGroup, unit_ids: list[str], as_of: datetime
    ) -> GridStats:
        try:
            result = await self._db.execute(
                _COMPUTE_SQL,
                {
                    "account_id": account_id,
                    "config_id": group.id,
                    "unit_ids": list(unit_ids),
                    "as_of": as_of,
                },
            )
            row = result.fetchone()
        except Exception:
            # The session is shared with the schedule advance that follows.
            await self._db.rollback()
            raise
        if row is None:
            return GridStats()
        return GridStats(
            points_checked=row.points_checked,
            keywords_checked=row.keywords_checked,
            top3=row.top3,
            top10=row.top10,
            top20=row.top20,
            not_found=row.not_found,
            groups_checked=row.groups_checked,
        )

    def merge(self, a: GridStats, b: GridStats) -> GridStats:
        return merge_stats(a, b)
