"""007: create gg_checks, gg_daily_summaries, notifications tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE gg_checks (
            id                  BIGSERIAL    PRIMARY KEY,
            config_id           UUID         NOT NULL REFERENCES gg_configs (id) ON DELETE CASCADE,
            tracked_keyword_id  UUID         NOT NULL REFERENCES gg_tracked_keywords (id) ON DELETE CASCADE,
            account_id          VARCHAR(64)  NOT NULL,
            point_label         VARCHAR(16)  NOT NULL,
            position            SMALLINT,
            position_bucket     VARCHAR(8)   NOT NULL,
            checked_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_gg_checks_bucket CHECK (
                position_bucket IN ('top3', 'top10', 'top20', 'none')
            )
        );
    """)
    op.execute("CREATE INDEX idx_gg_checks_config_time ON gg_checks (config_id, checked_at DESC);")
    op.execute(
        "CREATE INDEX idx_gg_checks_keyword_time ON gg_checks (tracked_keyword_id, checked_at DESC);"
    )

    op.execute("""
        CREATE TABLE gg_daily_summaries (
            id                BIGSERIAL     PRIMARY KEY,
            config_id         UUID          NOT NULL REFERENCES gg_configs (id) ON DELETE CASCADE,
            account_id        VARCHAR(64)   NOT NULL,
            summary_date      DATE          NOT NULL,
            total_checks      INTEGER       NOT NULL DEFAULT 0,
            keywords_checked  INTEGER       NOT NULL DEFAULT 0,
            top3_count        INTEGER       NOT NULL DEFAULT 0,
            top10_count       INTEGER       NOT NULL DEFAULT 0,
            top20_count       INTEGER       NOT NULL DEFAULT 0,
            not_found_count   INTEGER       NOT NULL DEFAULT 0,
            avg_position      NUMERIC(6, 2),
            generated_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_gg_daily_summaries_config_date UNIQUE (config_id, summary_date)
        );
    """)

    op.execute("""
        CREATE TABLE notifications (
            id          BIGSERIAL    PRIMARY KEY,
            account_id  VARCHAR(64)  NOT NULL,
            type        VARCHAR(64)  NOT NULL,
            payload     JSONB        NOT NULL DEFAULT '{}'::jsonb,
            is_read     BOOLEAN      NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX idx_notifications_account_unread "
        "ON notifications (account_id, created_at DESC) WHERE NOT is_read;"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
    op.execute("DROP TABLE IF EXISTS gg_daily_summaries CASCADE;")
    op.execute("DROP TABLE IF EXISTS gg_checks CASCADE;")
