from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20260220_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("telegram_id", sa.BigInteger(), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("market", sa.String(length=10), nullable=False),
        sa.Column("instruments", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("initial_deposit", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(length=4), nullable=False),
        sa.Column("registered_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("consented_pd", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("consented_rules", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.CheckConstraint("market IN ('crypto', 'moex', 'forex')", name="ck_users_market"),
        sa.CheckConstraint("initial_deposit > 0", name="ck_users_initial_deposit_positive"),
    )
    op.create_index("ix_users_telegram_id", "users", ["telegram_id"], unique=True)
    op.create_index("ix_users_market", "users", ["market"])

def downgrade() -> None:
    op.drop_index("ix_users_market", table_name="users")
    op.drop_index("ix_users_telegram_id", table_name="users")
    op.drop_table("users")
