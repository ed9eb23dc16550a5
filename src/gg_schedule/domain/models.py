"""Domain models for gg_schedule — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.gg_common.enums import ScheduleMode


@dataclass
class ScheduleGroup:
    """A geo-grid config (Tier 1): one account's grid around a target business."""

    id: str
    account_id: str
    target_place_id: str | None
    center_lat: float | None
    center_lng: float | None
    radius_miles: float | None
    check_points: list[str] = field(default_factory=list)
    is_enabled: bool = True
    schedule_frequency: str | None = None   # daily | weekly | monthly, None = not scheduled
    schedule_day_of_week: int | None = None  # 0=Sunday
    schedule_day_of_month: int | None = None
    schedule_hour: int = 9
    next_scheduled_at: datetime | None = None
    last_scheduled_run_at: datetime | None = None

    @property
    def point_count(self) -> int:
        return len(self.check_points)

    @property
    def is_recurring(self) -> bool:
        return self.schedule_frequency is not None


@dataclass
class ScheduleUnit:
    """A tracked keyword on a config (Tier 2 when its mode is CUSTOM)."""

    id: str
    group_id: str
    account_id: str
    keyword_id: str
    is_enabled: bool = True
    schedule_mode: ScheduleMode = ScheduleMode.INHERIT
    schedule_frequency: str | None = None
    schedule_day_of_week: int | None = None
    schedule_day_of_month: int | None = None
    schedule_hour: int | None = None
    next_scheduled_at: datetime | None = None
    last_scheduled_run_at: datetime | None = None
