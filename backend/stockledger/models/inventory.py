from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with its on-hand stock.

    STOCK OWNERSHIP:
    stock is only written by the order-line ledger (guarded increments) and by
    product creation/import. The CHECK constraint is the last line of defence
    for the non-negative invariant.

    SOFT DELETE:
    Deleted products keep their row (order history references them) but their
    code is rewritten to REMOVED-<timestamp>-<old code> so the code can be
    reused by a new product.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("business_id", "code", name="uq_products_business_code"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_business_name", "business_id", "name"),
        db.Index("ix_products_business_active", "business_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    code = db.Column(db.String(120), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Whole currency units (single-currency bookkeeping)
    cost = db.Column(db.Integer, nullable=False, default=0)
    selling_price = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=False)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))
    analytics = db.relationship("ProductAnalytics", uselist=False, back_populates="product")

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} stock={self.stock} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "code": self.code,
            "name": self.name,
            "cost": self.cost,
            "selling_price": self.selling_price,
            "stock": self.stock,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "deleted_at": to_utc_z(self.deleted_at),
            "category_id": self.category_id,
            "supplier_id": self.supplier_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductAnalytics(db.Model):
    """
    Running per-product counters. Incremented/decremented in the database,
    never recomputed from order history.
    """
    __tablename__ = "product_analytics"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_product_analytics_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    total_sales = db.Column(db.Integer, nullable=False, default=0)
    total_profit = db.Column(db.Integer, nullable=False, default=0)
    total_returns = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="analytics")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "business_id": self.business_id,
            "total_sales": self.total_sales,
            "total_profit": self.total_profit,
            "total_returns": self.total_returns,
        }
