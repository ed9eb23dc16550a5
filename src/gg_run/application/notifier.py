"""Notifier Gateway.

Two classes of notice:
  - immediate: a Tier-1 config skipped for lack of credits gets a
    ``credit_check_skipped`` notice inline;
  - consolidated: ``flush`` sends one ``geogrid_batch_completed`` notice per
    account in the accumulator, once, at the end of the run.

Both are best-effort. A delivery failure is logged and never propagates.
"""

import logging

from src.gg_common.enums import FeatureType, NotificationType
from src.gg_run.domain.collaborators import NotifierProtocol
from src.gg_run.domain.models import ProcessResult
from src.gg_run.domain.stats import AccountStatsAccumulator

logger = logging.getLogger(__name__)


class NotifierGateway:
    def __init__(self, notifier: NotifierProtocol) -> None:
        self._notifier = notifier

    async def insufficient_credits(
        self, result: ProcessResult, required: int, available: int
    ) -> bool:
        payload = {
            "required": required,
            "available": available,
            "feature": FeatureType.GEO_GRID_SCHEDULE.value,
            "config_id": result.group_id,
        }
        try:
            await self._notifier.notify(
                result.account_id, NotificationType.CREDIT_CHECK_SKIPPED.value, payload
            )
        except Exception:
            logger.warning(
                "Low-balance notice failed: account=%s config=%s",
                result.account_id,
                result.group_id,
                exc_info=True,
            )
            return False
        return True

    async def flush(self, accumulator: AccountStatsAccumulator) -> int:
        """Send one batch-completed notice per account. Returns how many were delivered."""
        sent = 0
        for account_id, stats in accumulator.items():
            try:
                await self._notifier.notify(
                    account_id,
                    NotificationType.GEOGRID_BATCH_COMPLETED.value,
                    stats.to_payload(),
                )
            except Exception:
                logger.warning(
                    "Batch-completed notice failed: account=%s", account_id, exc_info=True
                )
                continue
            sent += 1
        logger.info("Sent %d batch-completed notifications", sent)
        return sent
