"""earned badges per account

Revision ID: 0002_account_badges
Revises: 0001_initial_schema
Create Date: 2026-10-19 15:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002_account_badges"
down_revision: str | None = "0001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "account_badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("account_id", "code", name="uq_account_badges_account_code"),
    )
    op.create_index("ix_account_badges_account_id", "account_badges", ["account_id"])


def downgrade() -> None:
    op.drop_index("ix_account_badges_account_id", table_name="account_badges")
    op.drop_table("account_badges")
