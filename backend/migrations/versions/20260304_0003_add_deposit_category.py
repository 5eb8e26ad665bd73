from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20260304_0003"
down_revision = "20260220_0002"
branch_labels = None
depends_on = None

def upgrade() -> None:
    # Nullable: rows registered before classification existed stay unclassified
    op.add_column("users", sa.Column("deposit_category", sa.SmallInteger(), nullable=True))
    op.create_check_constraint(
        "ck_users_deposit_category", "users", "deposit_category IS NULL OR deposit_category IN (1, 2, 3)"
    )
    op.create_index("ix_users_deposit_category", "users", ["deposit_category"])

def downgrade() -> None:
    op.drop_index("ix_users_deposit_category", table_name="users")
    op.drop_constraint("ck_users_deposit_category", "users", type_="check")
    op.drop_column("users", "deposit_category")
