"""006: next_scheduled_at recurrence trigger

The scheduled run only writes last_scheduled_run_at; these triggers derive
next_scheduled_at from it (or from NOW() for a row that has never run).
All times are UTC. Day of week: 0=Sunday. Day of month: 1..28.

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_compute_next_scheduled_at(
            p_frequency     VARCHAR,
            p_day_of_week   SMALLINT,
            p_day_of_month  SMALLINT,
            p_hour          SMALLINT,
            p_after         TIMESTAMPTZ
        )
        RETURNS TIMESTAMPTZ AS $$
        DECLARE
            v_after     TIMESTAMP := p_after AT TIME ZONE 'UTC';
            v_hour      INTERVAL  := make_interval(hours => COALESCE(p_hour, 9));
            v_candidate TIMESTAMP;
        BEGIN
            IF p_frequency IS NULL THEN
                RETURN NULL;
            END IF;

            IF p_frequency = 'daily' THEN
                v_candidate := date_trunc('day', v_after) + v_hour;
                IF v_candidate <= v_after THEN
                    v_candidate := v_candidate + INTERVAL '1 day';
                END IF;
            ELSIF p_frequency = 'weekly' THEN
                v_candidate := date_trunc('day', v_after)
                    + make_interval(days => ((COALESCE(p_day_of_week, 1)
                        - EXTRACT(DOW FROM v_after)::int + 7) % 7))
                    + v_hour;
                IF v_candidate <= v_after THEN
                    v_candidate := v_candidate + INTERVAL '7 days';
                END IF;
            ELSIF p_frequency = 'monthly' THEN
                v_candidate := date_trunc('month', v_after)
                    + make_interval(days => COALESCE(p_day_of_month, 1) - 1)
                    + v_hour;
                IF v_candidate <= v_after THEN
                    v_candidate := v_candidate + INTERVAL '1 month';
                END IF;
            ELSE
                RETURN NULL;
            END IF;

            RETURN v_candidate AT TIME ZONE 'UTC';
        END;
        $$ LANGUAGE plpgsql IMMUTABLE;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_gg_configs_schedule()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.next_scheduled_at := fn_compute_next_scheduled_at(
                NEW.schedule_frequency,
                NEW.schedule_day_of_week,
                NEW.schedule_day_of_month,
                NEW.schedule_hour,
                COALESCE(NEW.last_scheduled_run_at, NOW())
            );
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_gg_tracked_keywords_schedule()
        RETURNS TRIGGER AS $$
        BEGIN
            IF NEW.schedule_mode = 'custom' THEN
                NEW.next_scheduled_at := fn_compute_next_scheduled_at(
                    NEW.schedule_frequency,
                    NEW.schedule_day_of_week,
                    NEW.schedule_day_of_month,
                    NEW.schedule_hour,
                    COALESCE(NEW.last_scheduled_run_at, NOW())
                );
            ELSE
                NEW.next_scheduled_at := NULL;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_gg_configs_schedule
            BEFORE INSERT OR UPDATE OF
                last_scheduled_run_at, schedule_frequency, schedule_day_of_week,
                schedule_day_of_month, schedule_hour
            ON gg_configs
            FOR EACH ROW EXECUTE FUNCTION fn_gg_configs_schedule();
    """)
    op.execute("""
        CREATE TRIGGER trg_gg_tracked_keywords_schedule
            BEFORE INSERT OR UPDATE OF
                last_scheduled_run_at, schedule_mode, schedule_frequency,
                schedule_day_of_week, schedule_day_of_month, schedule_hour
            ON gg_tracked_keywords
            FOR EACH ROW EXECUTE FUNCTION fn_gg_tracked_keywords_schedule();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_gg_tracked_keywords_schedule ON gg_tracked_keywords;")
    op.execute("DROP TRIGGER IF EXISTS trg_gg_configs_schedule ON gg_configs;")
    op.execute("DROP FUNCTION IF EXISTS fn_gg_tracked_keywords_schedule();")
    op.execute("DROP FUNCTION IF EXISTS fn_gg_configs_schedule();")
    op.execute(
        "DROP FUNCTION IF EXISTS "
        "fn_compute_next_scheduled_at(VARCHAR, SMALLINT, SMALLINT, SMALLINT, TIMESTAMPTZ);"
    )
