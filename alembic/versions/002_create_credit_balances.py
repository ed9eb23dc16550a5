"""002: create credit_balances table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_balances (
            account_id                  VARCHAR(64) PRIMARY KEY,
            included_credits            INTEGER     NOT NULL DEFAULT 0,
            purchased_credits           INTEGER     NOT NULL DEFAULT 0,
            included_credits_expire_at  TIMESTAMPTZ,
            created_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_balances_included_gte_0  CHECK (included_credits >= 0),
            CONSTRAINT ck_credit_balances_purchased_gte_0 CHECK (purchased_credits >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_credit_balances_updated_at
            BEFORE UPDATE ON credit_balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE credit_balances IS "
        "'One row per account. Included credits are spent before purchased credits';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_balances CASCADE;")
