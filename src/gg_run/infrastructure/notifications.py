"""SqlNotifier: in-app notifications are rows in the ``notifications`` table."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_SQL = text("""
    INSERT INTO notifications (account_id, type, payload)
    VALUES (:account_id, :type, CAST(:payload AS JSONB))
""")


class SqlNotifier:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def notify(self, account_id: str, event_type: str, payload: dict[str, Any]) -> None:
        try:
            await self._db.execute(
                _INSERT_SQL,
                {"account_id": account_id, "type": event_type, "payload": json.dumps(payload)},
            )
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
