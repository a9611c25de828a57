from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    Commercial transaction.

    LIFECYCLE:
    PENDING -> FINISHED (lines applied to stock/analytics)
    FINISHED -> DISCARDED (effects undone) -> FINISHED (effects re-applied)
    PENDING -> DISCARDED (nothing was applied, nothing to undo)

    ledger_applied tracks whether line effects are currently reflected in
    stock/analytics so delete and discard know whether to undo them.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('PENDING', 'FINISHED', 'DISCARDED')",
            name="ck_orders_status",
        ),
        db.Index("ix_orders_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING")
    payment_method = db.Column(db.String(32), nullable=True)

    subtotal = db.Column(db.Integer, nullable=False, default=0)
    total_discount = db.Column(db.Integer, nullable=False, default=0)
    direct_discount = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False, default=0)

    ledger_applied = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lines = db.relationship(
        "ProductOrder",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ProductOrder.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} business_id={self.business_id}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "seller_id": self.seller_id,
            "status": self.status,
            "payment_method": self.payment_method,
            "subtotal": self.subtotal,
            "total_discount": self.total_discount,
            "direct_discount": self.direct_discount,
            "total": self.total,
            "ledger_applied": self.ledger_applied,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class ProductOrder(db.Model):
    """One product row within an order (an order line)."""
    __tablename__ = "product_orders"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_product_orders_quantity_positive"),
        db.CheckConstraint(
            "type IN ('SALE', 'RETURN', 'PROMO')",
            name="ck_product_orders_type",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False, default="SALE")

    total_price = db.Column(db.Integer, nullable=False, default=0)
    total_discount = db.Column(db.Integer, nullable=False, default=0)

    # Derived from (total_price, total_discount, cost, quantity, type); written by the ledger
    profit = db.Column(db.Integer, nullable=False, default=0)

    order = db.relationship("Order", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "type": self.type,
            "total_price": self.total_price,
            "total_discount": self.total_discount,
            "profit": self.profit,
        }
