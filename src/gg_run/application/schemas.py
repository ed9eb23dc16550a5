# src/gg_run/application/schemas.py
"""Response schema for the scheduled-run trigger. Serialized with camelCase keys."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.gg_run.domain.models import ProcessResult, RunSummary, TierSummary


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TierSummaryResponse(_CamelModel):
    total: int = 0
    processed: int = 0
    skipped: int = 0
    insufficient_credits: int = 0
    errors: int = 0
    credits_used: int = 0
    checks_performed: int = 0

    @classmethod
    def from_domain(cls, tier: TierSummary) -> "TierSummaryResponse":
        return cls(
            total=tier.total,
            processed=tier.processed,
            skipped=tier.skipped,
            insufficient_credits=tier.insufficient_credits,
            errors=tier.errors,
            credits_used=tier.credits_used,
            checks_performed=tier.checks_performed,
        )


class RunTiersResponse(_CamelModel):
    tier1: TierSummaryResponse
    tier2: TierSummaryResponse


class ProcessResultResponse(_CamelModel):
    tier: str
    config_id: str
    tracked_keyword_id: str | None = None
    account_id: str
    status: str
    credits_charged: int = 0
    checks_performed: int = 0
    reason: str | None = None
    error: str | None = None
    deficit: int | None = None
    idempotency_key: str | None = None
    refunded: bool | None = None

    @classmethod
    def from_domain(cls, result: ProcessResult) -> "ProcessResultResponse":
        return cls(
            tier=result.tier.value,
            config_id=result.group_id,
            tracked_keyword_id=result.unit_id,
            account_id=result.account_id,
            status=result.status.value,
            credits_charged=result.credits_charged,
            checks_performed=result.checks_performed,
            reason=result.reason,
            error=result.error,
            deficit=result.deficit,
            idempotency_key=result.idempotency_key,
            refunded=result.refunded,
        )


class RunResponse(_CamelModel):
    success: bool
    run_id: str
    duration: int  # milliseconds
    already_running: bool = False
    summary: RunTiersResponse
    notifications_sent: int = 0
    tier_errors: dict[str, str] = {}
    details: list[ProcessResultResponse] = []

    @classmethod
    def from_domain(cls, summary: RunSummary) -> "RunResponse":
        return cls(
            success=summary.success,
            run_id=summary.run_id,
            duration=summary.duration_ms,
            already_running=summary.already_running,
            summary=RunTiersResponse(
                tier1=TierSummaryResponse.from_domain(summary.tier1),
                tier2=TierSummaryResponse.from_domain(summary.tier2),
            ),
            notifications_sent=summary.notifications_sent,
            tier_errors=dict(summary.tier_errors),
            details=[ProcessResultResponse.from_domain(r) for r in summary.details],
        )
