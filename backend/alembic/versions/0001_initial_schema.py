"""wagering schema: accounts, ledger, events, bets, money requests, outbox

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("balance", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("origin", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(14, 2), nullable=False),
        sa.Column("reference_type", sa.String(length=32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("amount > 0", name="ck_ledger_transactions_amount_positive"),
    )
    op.create_index(
        "ix_ledger_transactions_account_created", "ledger_transactions", ["account_id", "created_at"]
    )
    op.create_index("ix_ledger_transactions_origin", "ledger_transactions", ["origin"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("pricing_model", sa.String(length=32), nullable=False),
        sa.Column("commence_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("winner_option_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_events_status_commence", "events", ["status", "commence_time"])

    op.create_table(
        "event_options",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("seed_odd", sa.Numeric(12, 4), nullable=False),
        sa.Column("current_odd", sa.Numeric(12, 4), nullable=False),
        sa.Column("total_staked", sa.Numeric(14, 2), nullable=False),
        sa.UniqueConstraint("event_id", "position", name="uq_event_options_position"),
        sa.CheckConstraint("current_odd >= 1", name="ck_event_options_odd_min"),
        sa.CheckConstraint("total_staked >= 0", name="ck_event_options_staked_non_negative"),
    )
    op.create_index("ix_event_options_event_id", "event_options", ["event_id"])

    op.create_table(
        "bets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_odd", sa.Numeric(16, 4), nullable=False),
        sa.Column("potential_payout", sa.Numeric(16, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("payout", sa.Numeric(16, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_bets_amount_positive"),
    )
    op.create_index("ix_bets_account_created", "bets", ["account_id", "created_at"])
    op.create_index("ix_bets_status", "bets", ["status"])

    op.create_table(
        "bet_legs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bet_id", sa.Integer(), sa.ForeignKey("bets.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("chosen_option_id", sa.Integer(), sa.ForeignKey("event_options.id"), nullable=False),
        sa.Column("locked_odd", sa.Numeric(12, 4), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.UniqueConstraint("bet_id", "event_id", name="uq_bet_legs_bet_event"),
    )
    op.create_index("ix_bet_legs_event_id", "bet_legs", ["event_id"])

    op.create_table(
        "money_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("handled_by", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=True),
        sa.Column("handled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_money_requests_account_id", "money_requests", ["account_id"])
    op.create_index("ix_money_requests_status_created", "money_requests", ["status", "created_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("topic", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_undelivered", "notifications", ["delivered_at", "id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_undelivered", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_money_requests_status_created", table_name="money_requests")
    op.drop_index("ix_money_requests_account_id", table_name="money_requests")
    op.drop_table("money_requests")
    op.drop_index("ix_bet_legs_event_id", table_name="bet_legs")
    op.drop_table("bet_legs")
    op.drop_index("ix_bets_status", table_name="bets")
    op.drop_index("ix_bets_account_created", table_name="bets")
    op.drop_table("bets")
    op.drop_index("ix_event_options_event_id", table_name="event_options")
    op.drop_table("event_options")
    op.drop_index("ix_events_status_commence", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_ledger_transactions_origin", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_account_created", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_table("accounts")
