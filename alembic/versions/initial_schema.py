"""Initial schema: customers, products, orders, order_items.

Revision ID: initial_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("contact_no", sa.String(), nullable=True),
        sa.Column("shopify_customer_id", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_customers_contact_no", "customers", ["contact_no"], unique=True)
    op.create_index("ix_customers_shopify_customer_id", "customers", ["shopify_customer_id"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("product_code", sa.String(), nullable=False),
        sa.Column("product_name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("available_colors", sa.JSON(), nullable=False),
        sa.Column("available_sizes", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_products_product_code", "products", ["product_code"], unique=True)

    payment_mode = sa.Enum("PAID", "COD", name="paymentmode")
    text_columns = [
        "order_confirmation", "comments", "review_taken", "customer_review", "product_review",
        "return_reason", "shipping_adjustment", "return_status", "exchange_status",
        "whatsapp_notification_failed_reason", "tracking_url",
    ]
    flag_columns = [
        "process_order", "order_packed", "rto_received", "damaged", "delivered", "is_rto",
        "is_return", "return_initiated", "return_picked", "return_delivered",
    ]
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("order_date", sa.DateTime(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_mode", payment_mode, nullable=False, server_default="PAID"),
        sa.Column("order_status", sa.String(), nullable=False, server_default="New"),
        *[sa.Column(name, sa.String(), server_default="") for name in text_columns],
        *[sa.Column(name, sa.Boolean(), server_default=sa.false()) for name in flag_columns],
        sa.Column("meta_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    # ON CONFLICT (order_id) target for the order upsert
    op.create_index("ix_orders_order_id", "orders", ["order_id"], unique=True)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("selected_colors", sa.JSON(), nullable=False),
        sa.Column("selected_sizes", sa.JSON(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])


def downgrade() -> None:
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_order_id", table_name="orders")
    op.drop_table("orders")
    sa.Enum(name="paymentmode").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_products_product_code", table_name="products")
    op.drop_table("products")
    op.drop_index("ix_customers_shopify_customer_id", table_name="customers")
    op.drop_index("ix_customers_contact_no", table_name="customers")
    op.drop_table("customers")
