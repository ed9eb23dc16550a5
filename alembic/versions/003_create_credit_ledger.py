"""003: create credit_ledger table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_ledger (
            id                BIGSERIAL     PRIMARY KEY,
            account_id        VARCHAR(64)   NOT NULL,
            amount            INTEGER       NOT NULL,
            balance_after     INTEGER       NOT NULL,
            credit_type       VARCHAR(16)   NOT NULL,
            transaction_type  VARCHAR(32)   NOT NULL,
            feature_type      VARCHAR(64),
            feature_metadata  JSONB         NOT NULL DEFAULT '{}'::jsonb,
            idempotency_key   VARCHAR(255)  NOT NULL,
            reference_key     VARCHAR(255),
            description       VARCHAR(500),
            created_at        TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_credit_ledger_idempotency UNIQUE (account_id, idempotency_key),
            CONSTRAINT ck_credit_ledger_amount_ne_0 CHECK (amount <> 0),
            CONSTRAINT ck_credit_ledger_balance_gte_0 CHECK (balance_after >= 0),
            CONSTRAINT ck_credit_ledger_credit_type CHECK (
                credit_type IN ('included', 'purchased', 'mixed')
            ),
            CONSTRAINT ck_credit_ledger_transaction_type CHECK (
                transaction_type IN (
                    'feature_debit', 'feature_refund',
                    'purchase', 'monthly_grant', 'manual_adjustment'
                )
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_credit_ledger_account_time ON credit_ledger (account_id, created_at DESC);"
    )
    op.execute("""
        CREATE INDEX idx_credit_ledger_reference
        ON credit_ledger (account_id, reference_key)
        WHERE reference_key IS NOT NULL;
    """)
    op.execute(
        "COMMENT ON TABLE credit_ledger IS "
        "'Append-only. Refunds are keyed <debit key>:refund with reference_key = debit key';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_ledger CASCADE;")
