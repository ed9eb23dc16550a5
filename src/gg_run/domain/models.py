"""Domain models for gg_run — pure dataclasses describing one scheduled run."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from src.gg_common.enums import ProcessStatus, SkipReason, Tier
from src.gg_schedule.domain.models import ScheduleGroup


@dataclass
class WorkUnit:
    """One due item for the Budget Guard and Execution Saga.

    Tier 1: ``group`` is the due config and ``unit_ids`` its inherit-mode children.
    Tier 2: ``group`` is the parent config and ``unit_ids == [unit_id]``.
    ``occurrence`` identifies the due period and feeds the idempotency key.
    """

    tier: Tier
    account_id: str
    group: ScheduleGroup
    unit_ids: list[str] = field(default_factory=list)
    unit_id: str | None = None
    occurrence: str = "initial"

    @property
    def point_count(self) -> int:
        return self.group.point_count

    @property
    def child_count(self) -> int:
        return len(self.unit_ids)

    @property
    def target_id(self) -> str:
        """Id whose schedule this unit advances: the config (Tier 1) or the keyword (Tier 2)."""
        return self.unit_id if self.unit_id is not None else self.group.id


class GuardDecision(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"
    INSUFFICIENT = "insufficient"


@dataclass
class GuardOutcome:
    decision: GuardDecision
    credit_cost: int = 0
    estimated_cost_usd: Decimal = Decimal("0")
    reason: SkipReason | None = None
    required: int = 0
    available: int = 0

    @property
    def deficit(self) -> int:
        return max(0, self.required - self.available)

    @classmethod
    def proceed(cls, credit_cost: int, estimated_cost_usd: Decimal) -> "GuardOutcome":
        return cls(GuardDecision.PROCEED, credit_cost, estimated_cost_usd)

    @classmethod
    def skip(
        cls,
        reason: SkipReason,
        credit_cost: int = 0,
        estimated_cost_usd: Decimal = Decimal("0"),
    ) -> "GuardOutcome":
        return cls(GuardDecision.SKIP, credit_cost, estimated_cost_usd, reason=reason)

    @classmethod
    def insufficient(cls, required: int, available: int) -> "GuardOutcome":
        return cls(
            GuardDecision.INSUFFICIENT,
            credit_cost=required,
            required=required,
            available=available,
        )


@dataclass
class SagaOutcome:
    """What the Execution Saga did for a unit that passed the guard."""

    idempotency_key: str
    credits_charged: int = 0
    checks_performed: int = 0
    replayed: bool = False


@dataclass
class ProcessResult:
    tier: Tier
    group_id: str
    account_id: str
    status: ProcessStatus
    unit_id: str | None = None
    credits_charged: int = 0
    checks_performed: int = 0
    reason: str | None = None
    error: str | None = None
    deficit: int | None = None
    idempotency_key: str | None = None
    refunded: bool | None = None


@dataclass
class TierSummary:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    insufficient_credits: int = 0
    errors: int = 0
    credits_used: int = 0
    checks_performed: int = 0

    def record(self, result: ProcessResult) -> None:
        self.total += 1
        if result.status == ProcessStatus.SUCCESS:
            self.processed += 1
            self.credits_used += result.credits_charged
            self.checks_performed += result.checks_performed
        elif result.status == ProcessStatus.SKIPPED:
            self.skipped += 1
        elif result.status == ProcessStatus.INSUFFICIENT_CREDITS:
            self.insufficient_credits += 1
        else:
            self.errors += 1


@dataclass
class RunSummary:
    run_id: str
    duration_ms: int = 0
    already_running: bool = False
    tier1: TierSummary = field(default_factory=TierSummary)
    tier2: TierSummary = field(default_factory=TierSummary)
    notifications_sent: int = 0
    tier_errors: dict[str, str] = field(default_factory=dict)
    details: list[ProcessResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.tier_errors

    def tier_summary(self, tier: Tier) -> TierSummary:
        return self.tier1 if tier == Tier.GROUP else self.tier2

    def record(self, result: ProcessResult) -> None:
        self.tier_summary(result.tier).record(result)
        self.details.append(result)


@dataclass(frozen=True)
class GridStats:
    """Per-account outcome stats. ``merge`` is a field-wise sum."""

    points_checked: int = 0
    keywords_checked: int = 0
    top3: int = 0
    top10: int = 0
    top20: int = 0
    not_found: int = 0
    groups_checked: int = 0

    def merge(self, other: "GridStats") -> "GridStats":
        return GridStats(
            points_checked=self.points_checked + other.points_checked,
            keywords_checked=self.keywords_checked + other.keywords_checked,
            top3=self.top3 + other.top3,
            top10=self.top10 + other.top10,
            top20=self.top20 + other.top20,
            not_found=self.not_found + other.not_found,
            groups_checked=self.groups_checked + other.groups_checked,
        )

    def to_payload(self) -> dict[str, int]:
        return {
            "points_checked": self.points_checked,
            "keywords_checked": self.keywords_checked,
            "top3": self.top3,
            "top10": self.top10,
            "top20": self.top20,
            "not_found": self.not_found,
            "groups_checked": self.groups_checked,
        }
