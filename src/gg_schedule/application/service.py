"""Due-work selection and schedule advancement for the scheduled run.

DueWorkSelector is read-only: it never touches a scheduling column. Both
classes roll the session back on failure; it is shared by the whole run.
ScheduleAdvancer stamps ``last_scheduled_run_at`` once per terminal unit and
commits immediately, so the stamp survives whatever the rest of the run does.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_schedule.domain.models import ScheduleGroup, ScheduleUnit
from src.gg_schedule.domain.repository import ScheduleRepositoryProtocol
from src.gg_schedule.infrastructure.persistence import ScheduleRepository

logger = logging.getLogger(__name__)


class DueWorkSelector:
    """Read-only. A failed read rolls the shared session back before re-raising
    so the next statement on it does not hit an aborted transaction."""

    def __init__(
        self, db: AsyncSession, repo: ScheduleRepositoryProtocol | None = None
    ) -> None:
        self._db = db
        self._repo: ScheduleRepositoryProtocol = repo or ScheduleRepository()

    async def due_groups(self, now: datetime) -> list[ScheduleGroup]:
        try:
            groups = await self._repo.list_due_groups(self._db, now)
        except Exception:
            await self._db.rollback()
            raise
        logger.info("Found %d geo-grid configs due to run", len(groups))
        return groups

    async def due_custom_units(self, now: datetime) -> list[ScheduleUnit]:
        try:
            units = await self._repo.list_due_custom_units(self._db, now)
        except Exception:
            await self._db.rollback()
            raise
        logger.info("Found %d custom-scheduled keywords due to run", len(units))
        return units

    async def inherit_unit_ids(self, group_id: str) -> list[str]:
        try:
            return await self._repo.list_inherit_unit_ids(self._db, group_id)
        except Exception:
            await self._db.rollback()
            raise

    async def get_group(self, group_id: str) -> ScheduleGroup | None:
        try:
            return await self._repo.get_group(self._db, group_id)
        except Exception:
            await self._db.rollback()
            raise


class ScheduleAdvancer:
    def __init__(
        self, db: AsyncSession, repo: ScheduleRepositoryProtocol | None = None
    ) -> None:
        self._db = db
        self._repo: ScheduleRepositoryProtocol = repo or ScheduleRepository()

    async def advance_group(self, group_id: str, ran_at: datetime) -> None:
        try:
            found = await self._repo.mark_group_ran(self._db, group_id, ran_at)
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        if not found:
            logger.warning("Advance skipped: config %s no longer exists", group_id)

    async def advance_unit(self, unit_id: str, ran_at: datetime) -> None:
        try:
            found = await self._repo.mark_unit_ran(self._db, unit_id, ran_at)
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        if not found:
            logger.warning("Advance skipped: tracked keyword %s no longer exists", unit_id)
