"""005: create gg_tracked_keywords table

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE gg_tracked_keywords (
            id                     UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            config_id              UUID         NOT NULL REFERENCES gg_configs (id) ON DELETE CASCADE,
            account_id             VARCHAR(64)  NOT NULL,
            keyword_id             UUID         NOT NULL,
            is_enabled             BOOLEAN      NOT NULL DEFAULT TRUE,
            schedule_mode          VARCHAR(10)  DEFAULT 'inherit',
            schedule_frequency     VARCHAR(10),
            schedule_day_of_week   SMALLINT,
            schedule_day_of_month  SMALLINT,
            schedule_hour          SMALLINT,
            next_scheduled_at      TIMESTAMPTZ,
            last_scheduled_run_at  TIMESTAMPTZ,
            created_at             TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at             TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_gg_tracked_keywords_config_keyword UNIQUE (config_id, keyword_id),
            CONSTRAINT ck_gg_tracked_keywords_mode CHECK (schedule_mode IN ('inherit', 'custom')),
            CONSTRAINT ck_gg_tracked_keywords_frequency CHECK (
                schedule_frequency IS NULL
                OR schedule_frequency IN ('daily', 'weekly', 'monthly')
            ),
            CONSTRAINT ck_gg_tracked_keywords_custom_has_frequency CHECK (
                schedule_mode <> 'custom' OR schedule_frequency IS NOT NULL
            ),
            CONSTRAINT ck_gg_tracked_keywords_day_of_week CHECK (
                schedule_day_of_week IS NULL OR schedule_day_of_week BETWEEN 0 AND 6
            ),
            CONSTRAINT ck_gg_tracked_keywords_day_of_month CHECK (
                schedule_day_of_month IS NULL OR schedule_day_of_month BETWEEN 1 AND 28
            ),
            CONSTRAINT ck_gg_tracked_keywords_hour CHECK (
                schedule_hour IS NULL OR schedule_hour BETWEEN 0 AND 23
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_gg_tracked_keywords_custom_due
        ON gg_tracked_keywords (next_scheduled_at)
        WHERE is_enabled AND schedule_mode = 'custom';
    """)
    op.execute(
        "CREATE INDEX idx_gg_tracked_keywords_config ON gg_tracked_keywords (config_id, schedule_mode);"
    )
    op.execute("""
        CREATE TRIGGER trg_gg_tracked_keywords_updated_at
            BEFORE UPDATE ON gg_tracked_keywords
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON COLUMN gg_tracked_keywords.schedule_mode IS "
        "'inherit or NULL: checked with its config (tier 1). custom: own schedule (tier 2)';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS gg_tracked_keywords CASCADE;")
