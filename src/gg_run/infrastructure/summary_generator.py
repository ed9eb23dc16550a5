"""SqlSummaryGenerator — per-config daily summary rows in gg_daily_summaries.

Aggregates today's gg_checks for the config (UTC day). ``force=True``
overwrites an existing row for the day; otherwise an existing row is kept.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_schedule.domain.models import ScheduleGroup

logger = logging.getLogger(__name__)

_AGGREGATE = """
    INSERT INTO gg_daily_summaries (
        config_id, account_id, summary_date,
        total_checks, keywords_checked,
        top3_count, top10_count, top20_count, not_found_count,
        avg_position, generated_at
    )
    SELECT
        CAST(:config_id AS UUID), :account_id, (NOW() AT TIME ZONE 'UTC')::date,
        COUNT(*),
        COUNT(DISTINCT tracked_keyword_id),
        COUNT(*) FILTER (WHERE position_bucket = 'top3'),
        COUNT(*) FILTER (WHERE position_bucket IN ('top3', 'top10')),
        COUNT(*) FILTER (WHERE position_bucket IN ('top3', 'top10', 'top20')),
        COUNT(*) FILTER (WHERE position_bucket = 'none'),
        ROUND(AVG(position)::numeric, 2),
        NOW()
    FROM gg_checks
    WHERE config_id = :config_id
      AND account_id = :account_id
      AND checked_at >= date_trunc('day', NOW() AT TIME ZONE 'UTC') AT TIME ZONE 'UTC'
    HAVING COUNT(*) > 0
"""

_UPSERT_FORCE_SQL = text(_AGGREGATE + """
    ON CONFLICT (config_id, summary_date) DO UPDATE SET
        total_checks     = EXCLUDED.total_checks,
        keywords_checked = EXCLUDED.keywords_checked,
        top3_count       = EXCLUDED.top3_count,
        top10_count      = EXCLUDED.top10_count,
        top20_count      = EXCLUDED.top20_count,
        not_found_count  = EXCLUDED.not_found_count,
        avg_position     = EXCLUDED.avg_position,
        generated_at     = EXCLUDED.generated_at
""")

_INSERT_IF_ABSENT_SQL = text(_AGGREGATE + """
    ON CONFLICT (config_id, summary_date) DO NOTHING
""")


class SqlSummaryGenerator:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def generate(self, group: ScheduleGroup, account_id: str, force: bool) -> None:
        stmt = _UPSERT_FORCE_SQL if force else _INSERT_IF_ABSENT_SQL
        try:
            result = await self._db.execute(
                stmt, {"config_id": group.id, "account_id": account_id}
            )
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        logger.info(
            "Daily summary %s: config=%s account=%s",
            "written" if result.rowcount else "unchanged",
            group.id,
            account_id,
        )
