"""SQLAlchemy ORM models for gg_schedule.

These map to existing tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, SmallInteger, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.gg_common.database import Base


class GeoGridConfigORM(Base):
    __tablename__ = "gg_configs"

    id: Mapped[str] = mapped_column(PG_UUID(as_uuid=False), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_place_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    center_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    center_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    radius_miles: Mapped[float | None] = mapped_column(Float, nullable=True)
    check_points: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    schedule_frequency: Mapped[str | None] = mapped_column(String(10), nullable=True)
    schedule_day_of_week: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    schedule_day_of_month: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    schedule_hour: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=9)
    next_scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_scheduled_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class TrackedKeywordORM(Base):
    __tablename__ = "gg_tracked_keywords"

    id: Mapped[str] = mapped_column(PG_UUID(as_uuid=False), primary_key=True)
    config_id: Mapped[str] = mapped_column(
        PG_UUID(as_uuid=False), ForeignKey("gg_configs.id"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    keyword_id: Mapped[str] = mapped_column(PG_UUID(as_uuid=False), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    schedule_mode: Mapped[str | None] = mapped_column(String(10), nullable=True, default="inherit")
    schedule_frequency: Mapped[str | None] = mapped_column(String(10), nullable=True)
    schedule_day_of_week: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    schedule_day_of_month: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    schedule_hour: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    next_scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_scheduled_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
