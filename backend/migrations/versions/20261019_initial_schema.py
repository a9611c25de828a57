"""Initial inventory schema: businesses, catalog, products, analytics, orders

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("color_code", sa.String(16), nullable=True),
        sa.Column("is_essential", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "code", name="uq_categories_business_code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("rut", sa.String(32), nullable=False, server_default="Sin Datos"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("fantasy_name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=False, server_default="Sin Datos"),
        sa.Column("city", sa.String(120), nullable=False, server_default="Sin Datos"),
        sa.Column("phone", sa.String(64), nullable=False, server_default="Sin Datos"),
        sa.Column("email", sa.String(255), nullable=False, server_default="Sin Datos"),
        sa.Column("is_essential", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "code", name="uq_suppliers_business_code"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("categories", schema=None) as batch_op:
        batch_op.create_index("ix_categories_business_id", ["business_id"], unique=False)
        batch_op.create_index(
            "uq_categories_business_essential",
            ["business_id"],
            unique=True,
            sqlite_where=sa.text("is_essential = 1"),
            postgresql_where=sa.text("is_essential"),
        )

    with op.batch_alter_table("suppliers", schema=None) as batch_op:
        batch_op.create_index("ix_suppliers_business_id", ["business_id"], unique=False)
        batch_op.create_index(
            "uq_suppliers_business_essential",
            ["business_id"],
            unique=True,
            sqlite_where=sa.text("is_essential = 1"),
            postgresql_where=sa.text("is_essential"),
        )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(120), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("selling_price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "code", name="uq_products_business_code"),
        sa.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_products_category_id", ["category_id"], unique=False)
        batch_op.create_index("ix_products_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_products_business_name", ["business_id", "name"], unique=False)
        batch_op.create_index("ix_products_business_active", ["business_id", "is_active"], unique=False)

    op.create_table(
        "product_analytics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("total_sales", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_profit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_returns", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", name="uq_product_analytics_product"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("product_analytics", schema=None) as batch_op:
        batch_op.create_index("ix_product_analytics_business_id", ["business_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("seller_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("subtotal", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_discount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("direct_discount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("ledger_applied", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("status IN ('PENDING', 'FINISHED', 'DISCARDED')", name="ck_orders_status"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_orders_seller_id", ["seller_id"], unique=False)
        batch_op.create_index("ix_orders_business_status", ["business_id", "status"], unique=False)

    op.create_table(
        "product_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="SALE"),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_discount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("profit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_product_orders_quantity_positive"),
        sa.CheckConstraint("type IN ('SALE', 'RETURN', 'PROMO')", name="ck_product_orders_type"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("product_orders", schema=None) as batch_op:
        batch_op.create_index("ix_product_orders_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_product_orders_product_id", ["product_id"], unique=False)


def downgrade():
    op.drop_table("product_orders")
    op.drop_table("orders")
    op.drop_table("product_analytics")
    op.drop_table("products")
    op.drop_table("suppliers")
    op.drop_table("categories")
    op.drop_table("businesses")
