"""Period-stable idempotency keys for scheduled debits.

Key: ``geo_grid_schedule:<tier>:<account>:<config-or-keyword id>:<occurrence>``

The occurrence names the due period rather than the attempt, so a duplicate
trigger for the same period replays the ledger entry instead of charging
again. Advancing the schedule changes the occurrence, which gives the next
period a fresh key.
"""

from datetime import datetime

from src.gg_common.datetime_utils import to_utc_iso
from src.gg_common.enums import FeatureType, Tier

INITIAL_OCCURRENCE = "initial"


def occurrence_of(
    next_scheduled_at: datetime | None, last_scheduled_run_at: datetime | None
) -> str:
    if next_scheduled_at is not None:
        return to_utc_iso(next_scheduled_at)
    if last_scheduled_run_at is not None:
        return f"after-{to_utc_iso(last_scheduled_run_at)}"
    return INITIAL_OCCURRENCE


def build_idempotency_key(tier: Tier, account_id: str, target_id: str, occurrence: str) -> str:
    prefix = FeatureType.GEO_GRID_SCHEDULE.value
    return f"{prefix}:{tier.value}:{account_id}:{target_id}:{occurrence}"
