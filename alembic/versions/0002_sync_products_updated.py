"""sync_executions.products_updated

Revision ID: 0002_sync_products_updated
Revises: 0001_initial
Create Date: 2024-06-10 09:30:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_sync_products_updated"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "sync_executions",
        sa.Column("products_updated", sa.Integer(), server_default="0")
    )
    op.create_index(
        "ix_marketplace_products_auto_sync",
        "marketplace_products",
        ["api_connection_id", "auto_sync_enabled", "last_sync_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_marketplace_products_auto_sync", table_name="marketplace_products")
    op.drop_column("sync_executions", "products_updated")
