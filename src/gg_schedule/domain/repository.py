"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_schedule.domain.models import ScheduleGroup, ScheduleUnit


class ScheduleRepositoryProtocol(Protocol):
    async def list_due_groups(
        self, db: AsyncSession, now: datetime
    ) -> list[ScheduleGroup]: ...

    async def list_due_custom_units(
        self, db: AsyncSession, now: datetime
    ) -> list[ScheduleUnit]: ...

    async def list_inherit_unit_ids(
        self, db: AsyncSession, group_id: str
    ) -> list[str]: ...

    async def get_group(
        self, db: AsyncSession, group_id: str
    ) -> ScheduleGroup | None: ...

    async def mark_group_ran(
        self, db: AsyncSession, group_id: str, ran_at: datetime
    ) -> bool: ...

    async def mark_unit_ran(
        self, db: AsyncSession, unit_id: str, ran_at: datetime
    ) -> bool: ...
