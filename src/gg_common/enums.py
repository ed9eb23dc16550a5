"""Global enums. Values must match DB CHECK constraints exactly.

Only the values the engine reads or writes are listed. The CHECK lists in
alembic/versions/002-007 also allow ledger types written by the billing side
(purchase, monthly_grant, manual_adjustment) and the schedule frequencies and
position buckets, which are stored as plain strings here.
"""

from enum import Enum


class ScheduleMode(str, Enum):
    """Which tier schedules a tracked keyword.

    Exactly two variants. A NULL column read from older rows is mapped to
    INHERIT by ``from_db`` at the persistence boundary.
    """

    INHERIT = "inherit"
    CUSTOM = "custom"

    @classmethod
    def from_db(cls, value: str | None) -> "ScheduleMode":
        if value is None:
            return cls.INHERIT
        return cls(value)


class Tier(str, Enum):
    """Tier 1 = grouped config schedule, Tier 2 = per-keyword custom schedule."""
    GROUP = "tier1"
    CUSTOM_UNIT = "tier2"


class ProcessStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    ERROR = "error"


class SkipReason(str, Enum):
    NO_TARGET = "no_target"
    DISABLED = "disabled"
    NO_CHECK_POINTS = "no_check_points"
    NO_ELIGIBLE_CHILDREN = "no_eligible_children"
    COST_CEILING_EXCEEDED = "cost_ceiling_exceeded"
    ALREADY_CHARGED = "already_charged"


class CreditType(str, Enum):
    INCLUDED = "included"
    PURCHASED = "purchased"
    MIXED = "mixed"  # single debit spanning both buckets


class LedgerTransactionType(str, Enum):
    FEATURE_DEBIT = "feature_debit"
    FEATURE_REFUND = "feature_refund"


class FeatureType(str, Enum):
    GEO_GRID_SCHEDULE = "geo_grid_schedule"


class NotificationType(str, Enum):
    CREDIT_CHECK_SKIPPED = "credit_check_skipped"
    GEOGRID_BATCH_COMPLETED = "geogrid_batch_completed"
