"""Integration-test fixtures (requires running PG with migrations applied).

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session.
"""

import json
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gg_common.database import async_session_factory
from src.main import app


@dataclass
class SeededAccount:
    account_id: str
    config_id: str
    inherit_ids: list[str] = field(default_factory=list)
    custom_id: str | None = None


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def seed_account(
    db: AsyncSession,
    included: int = 0,
    purchased: int = 0,
    points: int = 3,
    inherit_keywords: int = 2,
    custom_keyword: bool = True,
) -> SeededAccount:
    """One due config with inherit children and (optionally) one due custom keyword.

    The schedule trigger computes next_scheduled_at on insert, so rows are
    pushed into the past afterwards to make them due.
    """
    account_id = f"acct_it_{uuid.uuid4().hex[:10]}"
    config_id = (
        await db.execute(
            text("""
                INSERT INTO gg_configs
                    (account_id, target_place_id, center_lat, center_lng, radius_miles,
                     check_points, schedule_frequency, schedule_hour)
                VALUES
                    (:account_id, 'place-it', 40.0, -74.0, 3.0,
                     CAST(:points AS JSONB), 'daily', 9)
                RETURNING id
            """),
            {"account_id": account_id, "points": json.dumps([f"p{i}" for i in range(points)])},
        )
    ).scalar_one()
    seeded = SeededAccount(account_id=account_id, config_id=str(config_id))

    for _ in range(inherit_keywords):
        kw_id = (
            await db.execute(
                text("""
                    INSERT INTO gg_tracked_keywords (config_id, account_id, keyword_id)
                    VALUES (:config_id, :account_id, gen_random_uuid())
                    RETURNING id
                """),
                {"config_id": config_id, "account_id": account_id},
            )
        ).scalar_one()
        seeded.inherit_ids.append(str(kw_id))

    if custom_keyword:
        kw_id = (
            await db.execute(
                text("""
                    INSERT INTO gg_tracked_keywords
                        (config_id, account_id, keyword_id, schedule_mode,
                         schedule_frequency, schedule_day_of_week, schedule_hour)
                    VALUES (:config_id, :account_id, gen_random_uuid(), 'custom', 'weekly', 1, 9)
                    RETURNING id
                """),
                {"config_id": config_id, "account_id": account_id},
            )
        ).scalar_one()
        seeded.custom_id = str(kw_id)
        await db.execute(
            text("""
                UPDATE gg_tracked_keywords
                SET next_scheduled_at = NOW() - INTERVAL '1 hour'
                WHERE id = :id
            """),
            {"id": kw_id},
        )

    await db.execute(
        text("UPDATE gg_configs SET next_scheduled_at = NOW() - INTERVAL '1 hour' WHERE id = :id"),
        {"id": config_id},
    )
    await db.execute(
        text("""
            INSERT INTO credit_balances (account_id, included_credits, purchased_credits)
            VALUES (:account_id, :included, :purchased)
        """),
        {"account_id": account_id, "included": included, "purchased": purchased},
    )
    await db.commit()
    return seeded


@pytest_asyncio.fixture(loop_scope="session")
async def seed(db: AsyncSession):
    async def _seed(**kwargs) -> SeededAccount:
        return await seed_account(db, **kwargs)

    return _seed
