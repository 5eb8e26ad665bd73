from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20260220_0002"
down_revision = "20260220_0001"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "deposit_updates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("deposit_date", sa.Date(), nullable=False),
        sa.Column("deposit_value", sa.Numeric(18, 2), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        # one report per participant per contest day; resubmissions upsert onto it
        sa.UniqueConstraint("user_id", "deposit_date", name="uq_deposit_updates_user_date"),
    )
    op.create_index("ix_deposit_updates_user_date", "deposit_updates", ["user_id", "deposit_date"])
    op.create_index("ix_deposit_updates_date", "deposit_updates", ["deposit_date"])

def downgrade() -> None:
    op.drop_index("ix_deposit_updates_date", table_name="deposit_updates")
    op.drop_index("ix_deposit_updates_user_date", table_name="deposit_updates")
    op.drop_table("deposit_updates")
