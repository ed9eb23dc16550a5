"""004: create gg_configs table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE gg_configs (
            id                     UUID             PRIMARY KEY DEFAULT gen_random_uuid(),
            account_id             VARCHAR(64)      NOT NULL,
            target_place_id        VARCHAR(255),
            center_lat             DOUBLE PRECISION,
            center_lng             DOUBLE PRECISION,
            radius_miles           DOUBLE PRECISION,
            check_points           JSONB            NOT NULL DEFAULT '[]'::jsonb,
            is_enabled             BOOLEAN          NOT NULL DEFAULT TRUE,
            schedule_frequency     VARCHAR(10),
            schedule_day_of_week   SMALLINT,
            schedule_day_of_month  SMALLINT,
            schedule_hour          SMALLINT         NOT NULL DEFAULT 9,
            next_scheduled_at      TIMESTAMPTZ,
            last_scheduled_run_at  TIMESTAMPTZ,
            created_at             TIMESTAMPTZ      NOT NULL DEFAULT NOW(),
            updated_at             TIMESTAMPTZ      NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_gg_configs_frequency CHECK (
                schedule_frequency IS NULL
                OR schedule_frequency IN ('daily', 'weekly', 'monthly')
            ),
            CONSTRAINT ck_gg_configs_day_of_week CHECK (
                schedule_day_of_week IS NULL OR schedule_day_of_week BETWEEN 0 AND 6
            ),
            CONSTRAINT ck_gg_configs_day_of_month CHECK (
                schedule_day_of_month IS NULL OR schedule_day_of_month BETWEEN 1 AND 28
            ),
            CONSTRAINT ck_gg_configs_hour CHECK (schedule_hour BETWEEN 0 AND 23)
        );
    """)
    op.execute("""
        CREATE INDEX idx_gg_configs_due
        ON gg_configs (next_scheduled_at)
        WHERE is_enabled AND schedule_frequency IS NOT NULL;
    """)
    op.execute("CREATE INDEX idx_gg_configs_account ON gg_configs (account_id);")
    op.execute("""
        CREATE TRIGGER trg_gg_configs_updated_at
            BEFORE UPDATE ON gg_configs
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS gg_configs CASCADE;")
