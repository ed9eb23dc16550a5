"""FastAPI dependency: verify_cron_secret.

The scheduled-run trigger is called by an external cron platform that sends
``Authorization: Bearer <CRON_SECRET_TOKEN>``. Platforms that cannot set
headers may pass ``?token=<CRON_SECRET_TOKEN>`` instead.

Usage:
    @router.get("/cron/...", dependencies=[Depends(verify_cron_secret)])
"""

import logging
import secrets

from fastapi import Query, Request

from config.settings import settings
from src.gg_common.errors import CronSecretNotConfiguredError, CronUnauthorizedError

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def _extract_token(request: Request, token: str | None) -> str | None:
    header = request.headers.get("authorization")
    if header and header.startswith(_BEARER_PREFIX):
        return header[len(_BEARER_PREFIX):]
    return token


async def verify_cron_secret(
    request: Request,
    token: str | None = Query(None, description="Shared cron secret (header preferred)"),
) -> None:
    """Raise 500 if no secret is configured, 401 if the caller's secret is wrong."""
    expected = settings.CRON_SECRET_TOKEN
    if not expected:
        logger.error("CRON_SECRET_TOKEN is not configured; rejecting trigger")
        raise CronSecretNotConfiguredError()

    provided = _extract_token(request, token)
    if provided is None or not secrets.compare_digest(provided.encode(), expected.encode()):
        client = request.client.host if request.client else "unknown"
        logger.warning("Invalid cron authorization token from %s", client)
        raise CronUnauthorizedError()
