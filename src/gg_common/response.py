"""Unified error envelope.

Non-2xx responses (auth failures, setup errors) use this format:
{
    "code": 1001,        // AppError code
    "message": "Unauthorized",
    "data": null,
    "timestamp": "...",
    "request_id": "..."
}

The cron trigger's 2xx body is the run summary itself (see gg_run.application.schemas).
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=None)
    if request_id:
        resp.request_id = request_id
    return resp
