"""api_connections, marketplace_products, sync_executions

Revision ID: 0001_initial
Revises:
Create Date: 2024-05-01 12:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "api_connections",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("marketplace_name", sa.String(), nullable=False),
        sa.Column("connection_name", sa.String(), nullable=False),
        sa.Column("access_token", sa.Text()),
        sa.Column("refresh_token", sa.Text()),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("connection_status", sa.String(), nullable=False, server_default="disconnected"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("settings", sa.JSON()),
        sa.Column("last_test_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "marketplace_name", name="uq_api_connections_user_marketplace"),
    )
    op.create_index("ix_api_connections_id", "api_connections", ["id"])
    op.create_index("ix_api_connections_user_id", "api_connections", ["user_id"])
    op.create_index("ix_api_connections_status_active", "api_connections", ["connection_status", "is_active"])

    op.create_table(
        "marketplace_products",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("api_connection_id", sa.String(), nullable=False),
        sa.Column("marketplace_product_id", sa.String(), nullable=False),
        sa.Column("marketplace_name", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("condition", sa.String()),
        sa.Column("categories", sa.JSON()),
        sa.Column("images", sa.JSON()),
        sa.Column("attributes", sa.JSON()),
        sa.Column("original_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(), nullable=False),
        sa.Column("markup_type", sa.String(), nullable=False, server_default="percentage"),
        sa.Column("markup_value", sa.Numeric(10, 2), nullable=False, server_default="30"),
        sa.Column("available_quantity", sa.Integer(), server_default="0"),
        sa.Column("sold_quantity", sa.Integer(), server_default="0"),
        sa.Column("shipping_info", sa.JSON()),
        sa.Column("seller_info", sa.JSON()),
        sa.Column("marketplace_url", sa.String()),
        sa.Column("sync_status", sa.String(), server_default="pending"),
        sa.Column("last_sync_at", sa.DateTime(timezone=True)),
        sa.Column("auto_sync_enabled", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "api_connection_id", "marketplace_product_id", name="uq_marketplace_products_connection_item"
        ),
    )
    op.create_index("ix_marketplace_products_id", "marketplace_products", ["id"])
    op.create_index("ix_marketplace_products_api_connection_id", "marketplace_products", ["api_connection_id"])
    op.create_index("ix_marketplace_products_last_sync", "marketplace_products", ["last_sync_at"])

    op.create_table(
        "sync_executions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("api_connection_id", sa.String(), nullable=False),
        sa.Column("execution_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("products_found", sa.Integer(), server_default="0"),
        sa.Column("products_processed", sa.Integer(), server_default="0"),
        sa.Column("products_imported", sa.Integer(), server_default="0"),
        sa.Column("summary", sa.JSON()),
        sa.Column("error_message", sa.Text()),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_sync_executions_id", "sync_executions", ["id"])
    op.create_index("ix_sync_executions_api_connection_id", "sync_executions", ["api_connection_id"])
    op.create_index("ix_sync_executions_connection_started", "sync_executions", ["api_connection_id", "started_at"])


def downgrade() -> None:
    op.drop_table("sync_executions")
    op.drop_table("marketplace_products")
    op.drop_table("api_connections")
