"""ScheduleRepository — concrete implementation of ScheduleRepositoryProtocol.

Due-work queries use ORM select() over the declarative models; the only write
is the ``last_scheduled_run_at`` stamp. ``next_scheduled_at`` is recomputed by
the fn_compute_next_scheduled_at trigger (migration 006) when that stamp changes.

Due predicate (both tiers):
    is_enabled AND (next_scheduled_at <= now OR next_scheduled_at IS NULL)
A NULL next_scheduled_at means "never run, therefore due".
"""

from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_common.enums import ScheduleMode
from src.gg_schedule.domain.models import ScheduleGroup, ScheduleUnit
from src.gg_schedule.infrastructure.db_models import GeoGridConfigORM, TrackedKeywordORM


def _orm_to_group(row: GeoGridConfigORM) -> ScheduleGroup:
    return ScheduleGroup(
        id=str(row.id),
        account_id=row.account_id,
        target_place_id=row.target_place_id,
        center_lat=row.center_lat,
        center_lng=row.center_lng,
        radius_miles=row.radius_miles,
        check_points=_normalize_points(row.check_points),
        is_enabled=row.is_enabled,
        schedule_frequency=row.schedule_frequency,
        schedule_day_of_week=row.schedule_day_of_week,
        schedule_day_of_month=row.schedule_day_of_month,
        schedule_hour=row.schedule_hour,
        next_scheduled_at=row.next_scheduled_at,
        last_scheduled_run_at=row.last_scheduled_run_at,
    )


def _orm_to_unit(row: TrackedKeywordORM) -> ScheduleUnit:
    return ScheduleUnit(
        id=str(row.id),
        group_id=str(row.config_id),
        account_id=row.account_id,
        keyword_id=str(row.keyword_id),
        is_enabled=row.is_enabled,
        schedule_mode=ScheduleMode.from_db(row.schedule_mode),
        schedule_frequency=row.schedule_frequency,
        schedule_day_of_week=row.schedule_day_of_week,
        schedule_day_of_month=row.schedule_day_of_month,
        schedule_hour=row.schedule_hour,
        next_scheduled_at=row.next_scheduled_at,
        last_scheduled_run_at=row.last_scheduled_run_at,
    )


def _normalize_points(raw: Any) -> list[str]:
    """check_points is JSONB: a list of labels ("center", "n", "ne", ...)."""
    if not raw:
        return []
    return [str(point) for point in raw]


class ScheduleRepository:
    async def list_due_groups(
        self, db: AsyncSession, now: datetime
    ) -> list[ScheduleGroup]:
        stmt = (
            select(GeoGridConfigORM)
            .where(
                GeoGridConfigORM.is_enabled.is_(True),
                GeoGridConfigORM.schedule_frequency.is_not(None),
                or_(
                    GeoGridConfigORM.next_scheduled_at <= now,
                    GeoGridConfigORM.next_scheduled_at.is_(None),
                ),
            )
            .order_by(GeoGridConfigORM.next_scheduled_at.asc().nulls_first(), GeoGridConfigORM.id)
        )
        result = await db.execute(stmt)
        return [_orm_to_group(row) for row in result.scalars().all()]

    async def list_due_custom_units(
        self, db: AsyncSession, now: datetime
    ) -> list[ScheduleUnit]:
        stmt = (
            select(TrackedKeywordORM)
            .where(
                TrackedKeywordORM.schedule_mode == ScheduleMode.CUSTOM.value,
                TrackedKeywordORM.is_enabled.is_(True),
                or_(
                    TrackedKeywordORM.next_scheduled_at <= now,
                    TrackedKeywordORM.next_scheduled_at.is_(None),
                ),
            )
            .order_by(TrackedKeywordORM.next_scheduled_at.asc().nulls_first(), TrackedKeywordORM.id)
        )
        result = await db.execute(stmt)
        return [_orm_to_unit(row) for row in result.scalars().all()]

    async def list_inherit_unit_ids(
        self, db: AsyncSession, group_id: str
    ) -> list[str]:
        stmt = (
            select(TrackedKeywordORM.id)
            .where(
                TrackedKeywordORM.config_id == group_id,
                TrackedKeywordORM.is_enabled.is_(True),
                or_(
                    TrackedKeywordORM.schedule_mode == ScheduleMode.INHERIT.value,
                    TrackedKeywordORM.schedule_mode.is_(None),
                ),
            )
            .order_by(TrackedKeywordORM.id)
        )
        result = await db.execute(stmt)
        return [str(unit_id) for unit_id in result.scalars().all()]

    async def get_group(
        self, db: AsyncSession, group_id: str
    ) -> ScheduleGroup | None:
        result = await db.execute(
            select(GeoGridConfigORM).where(GeoGridConfigORM.id == group_id)
        )
        row = result.scalar_one_or_none()
        return _orm_to_group(row) if row else None

    async def mark_group_ran(
        self, db: AsyncSession, group_id: str, ran_at: datetime
    ) -> bool:
        result = await db.execute(
            update(GeoGridConfigORM)
            .where(GeoGridConfigORM.id == group_id)
            .values(last_scheduled_run_at=ran_at)
        )
        return bool(result.rowcount)

    async def mark_unit_ran(
        self, db: AsyncSession, unit_id: str, ran_at: datetime
    ) -> bool:
        result = await db.execute(
            update(TrackedKeywordORM)
            .where(TrackedKeywordORM.id == unit_id)
            .values(last_scheduled_run_at=ran_at)
        )
        return bool(result.rowcount)
