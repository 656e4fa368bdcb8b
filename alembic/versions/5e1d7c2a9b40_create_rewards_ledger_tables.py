"""create rewards ledger tables

Revision ID: 5e1d7c2a9b40
Revises:
Create Date: 2026-10-19 09:12:41.108233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "5e1d7c2a9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money():
    return sa.Numeric(12, 2)


def _created_at():
    return sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("loyalty_programs"):
        op.create_table(
            "loyalty_programs",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=255), nullable=True),
            sa.Column("tier_type", sa.String(length=50), nullable=False),
            sa.Column("benefits", sa.JSON(), nullable=False),
            sa.Column("requirements", sa.JSON(), nullable=False),
            sa.Column("min_spending", _money(), nullable=True),
            sa.Column("max_spending", _money(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _created_at(),
        )

    if not inspector.has_table("user_loyalty_status"):
        op.create_table(
            "user_loyalty_status",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=False),
            sa.Column(
                "loyalty_program_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("loyalty_programs.id"),
                nullable=False,
            ),
            sa.Column("current_tier", sa.String(length=50), nullable=False),
            sa.Column("total_spending", _money(), nullable=False, server_default="0"),
            sa.Column("tier_progress", _money(), nullable=False, server_default="0"),
            sa.Column("tier_achieved_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("tier_expiry_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("last_updated", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.UniqueConstraint("user_id", "loyalty_program_id", name="uq_user_loyalty_status_user_program"),
        )
        op.create_index("ix_user_loyalty_status_user_id", "user_loyalty_status", ["user_id"])

    if not inspector.has_table("campaigns"):
        op.create_table(
            "campaigns",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=255), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("start_date", sa.TIMESTAMP(), nullable=False),
            sa.Column("end_date", sa.TIMESTAMP(), nullable=False),
            sa.Column("min_transaction", _money(), nullable=True),
            sa.Column("max_cashback", _money(), nullable=True),
            sa.Column("rules", sa.JSON(), nullable=True),
            sa.Column("rewards", sa.JSON(), nullable=True),
            _created_at(),
        )
        op.create_index("ix_campaigns_active_window", "campaigns", ["is_active", "start_date", "end_date"])

    if not inspector.has_table("user_campaigns"):
        op.create_table(
            "user_campaigns",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id"), nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=False),
            sa.Column("total_earned", _money(), nullable=False, server_default="0"),
            _created_at(),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.UniqueConstraint("campaign_id", "user_id", name="uq_user_campaigns_campaign_user"),
        )
        op.create_index("ix_user_campaigns_user_id", "user_campaigns", ["user_id"])

    if not inspector.has_table("cashback_transactions"):
        op.create_table(
            "cashback_transactions",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=False),
            sa.Column("transaction_id", sa.String(length=100), nullable=False),
            sa.Column("transaction_amount", _money(), nullable=False),
            sa.Column("cashback_percentage", sa.Numeric(8, 4), nullable=False),
            sa.Column("cashback_amount", _money(), nullable=False),
            sa.Column("cashback_type", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id"), nullable=True),
            sa.Column("processed_at", sa.TIMESTAMP(), nullable=True),
            _created_at(),
            sa.UniqueConstraint("user_id", "transaction_id", name="uq_cashback_transactions_user_transaction"),
        )
        op.create_index("ix_cashback_transactions_user_id", "cashback_transactions", ["user_id"])

    if not inspector.has_table("reward_points"):
        op.create_table(
            "reward_points",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=False),
            sa.Column("points_earned", sa.Integer(), nullable=False),
            sa.Column("points_available", sa.Integer(), nullable=False),
            sa.Column("points_redeemed", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("points_expired", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("expiry_date", sa.TIMESTAMP(), nullable=True),
            _created_at(),
            sa.CheckConstraint(
                "points_available + points_redeemed + points_expired <= points_earned",
                name="ck_reward_points_balance",
            ),
        )
        op.create_index("ix_reward_points_user_id_created_at", "reward_points", ["user_id", "created_at"])

    if not inspector.has_table("reward_redemptions"):
        op.create_table(
            "reward_redemptions",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=False),
            sa.Column("points_used", sa.Integer(), nullable=False),
            sa.Column("redemption_type", sa.String(length=50), nullable=False),
            sa.Column("redemption_details", sa.JSON(), nullable=True),
            sa.Column("cash_value", _money(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="COMPLETED"),
            sa.Column("processed_at", sa.TIMESTAMP(), nullable=True),
            _created_at(),
        )
        op.create_index("ix_reward_redemptions_user_id", "reward_redemptions", ["user_id"])

    if not inspector.has_table("reward_history"):
        op.create_table(
            "reward_history",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=False),
            sa.Column("action_type", sa.String(length=30), nullable=False),
            sa.Column("points_change", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("cashback_change", _money(), nullable=False, server_default="0"),
            sa.Column("description", sa.String(length=255), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            _created_at(),
        )
        op.create_index("ix_reward_history_user_id_created_at", "reward_history", ["user_id", "created_at"])


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in (
        "reward_history",
        "reward_redemptions",
        "reward_points",
        "cashback_transactions",
        "user_campaigns",
        "campaigns",
        "user_loyalty_status",
        "loyalty_programs",
    ):
        if inspector.has_table(table):
            op.drop_table(table)
