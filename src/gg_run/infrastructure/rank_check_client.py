"""RankCheckClient — HTTP adapter for the external rank-check service.

POST {RANK_CHECK_SERVICE_URL}/v1/checks with the config's geography and the
tracked-keyword ids to check; the reply carries ``checksPerformed``.
Every transport, timeout, HTTP or payload problem surfaces as
RankCheckExecutionError so the saga can compensate.
"""

import logging
from typing import Any

import httpx

from config.settings import settings
from src.gg_common.errors import RankCheckExecutionError
from src.gg_schedule.domain.models import ScheduleGroup

logger = logging.getLogger(__name__)

CHECKS_PATH = "/v1/checks"


class RankCheckClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.RANK_CHECK_SERVICE_URL).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.RANK_CHECK_API_KEY
        self._timeout = timeout if timeout is not None else settings.RANK_CHECK_TIMEOUT_SECONDS
        self._transport = transport

    async def execute(self, group: ScheduleGroup, unit_ids: list[str]) -> int:
        payload = self._build_payload(group, unit_ids)
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(CHECKS_PATH, json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as exc:
            raise RankCheckExecutionError(f"timed out after {self._timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise RankCheckExecutionError(
                f"service returned {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            raise RankCheckExecutionError(f"network error: {exc}") from exc
        except ValueError as exc:
            raise RankCheckExecutionError("invalid JSON response") from exc

        checks = body.get("checksPerformed") if isinstance(body, dict) else None
        if not isinstance(checks, int) or isinstance(checks, bool) or checks < 0:
            raise RankCheckExecutionError(f"unexpected checksPerformed: {checks!r}")

        logger.info(
            "Rank check complete: config=%s keywords=%d checks=%d",
            group.id,
            len(unit_ids),
            checks,
        )
        return checks

    @staticmethod
    def _build_payload(group: ScheduleGroup, unit_ids: list[str]) -> dict[str, Any]:
        return {
            "configId": group.id,
            "accountId": group.account_id,
            "targetPlaceId": group.target_place_id,
            "center": {"lat": group.center_lat, "lng": group.center_lng},
            "radiusMiles": group.radius_miles,
            "checkPoints": list(group.check_points),
            "trackedKeywordIds": list(unit_ids),
        }
