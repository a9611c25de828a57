# Overview: Service-layer operations for the order-line ledger; applies stock and analytics deltas.

"""
Order-line ledger.

apply_order_lines() is the only writer of Product.stock and the
ProductAnalytics counters once a product exists. It runs inside the caller's
transaction and never commits: the order transition that invokes it commits
or rolls back all lines together.

Per line:
1. Re-read the product with a row lock (fresh values, never a cached snapshot).
2. Compute deltas from the (action, type) table and clamp the stock delta.
3. Apply the stock delta as a guarded conditional UPDATE; if another writer
   moved stock in between, re-read and recompute.
4. Increment analytics counters in the database.
5. Persist the recomputed line profit.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import inspect

from ..extensions import db
from ..models import Product, ProductAnalytics, ProductOrder
from ..validation import ConflictError, NotFoundError
from .concurrency import guarded_stock_increment, increment_analytics, lock_for_update
from .ledger_rules import LineDeltas, OrderAction, compute_line_deltas


class StockConflictError(ConflictError):
    """Raised when a guarded stock update keeps losing to concurrent writers."""


@dataclass
class LedgerEntry:
    line_id: int
    product_id: int
    deltas: LineDeltas

    def to_dict(self) -> dict:
        return {"line_id": self.line_id, "product_id": self.product_id, **self.deltas.to_dict()}


@dataclass
class LedgerResult:
    action: OrderAction
    entries: list[LedgerEntry] = field(default_factory=list)

    @property
    def clamped_lines(self) -> list[LedgerEntry]:
        return [e for e in self.entries if e.deltas.clamped]

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "entries": [e.to_dict() for e in self.entries],
            "clamped_line_ids": [e.line_id for e in self.clamped_lines],
        }


def _read_product(product_id: int) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    product = lock_for_update(query).populate_existing().first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def _expire_cached(product: Product) -> None:
    # Counters were changed with UPDATE statements; drop stale ORM state.
    if "analytics" not in inspect(product).unloaded and product.analytics is not None:
        db.session.expire(product.analytics)
    db.session.expire(product)


def _apply_stock(line: ProductOrder, action: OrderAction) -> tuple[Product, LineDeltas]:
    attempts = max(1, int(current_app.config.get("STOCK_UPDATE_ATTEMPTS", 3)))
    for _ in range(attempts):
        product = _read_product(line.product_id)
        deltas = compute_line_deltas(
            action=action,
            line_type=line.type,
            quantity=line.quantity,
            cost=product.cost,
            selling_price=product.selling_price,
            current_stock=product.stock,
            total_price=line.total_price,
            total_discount=line.total_discount,
        )
        if deltas.stock == 0 or guarded_stock_increment(product.id, deltas.stock):
            return product, deltas

    raise StockConflictError(
        f"Stock for product {line.product_id} changed concurrently; retry the operation"
    )


def apply_line(line: ProductOrder, action: OrderAction | str) -> LedgerEntry:
    """Apply one lifecycle action to one order line."""
    action = OrderAction(action)
    product, deltas = _apply_stock(line, action)

    if not increment_analytics(
        product.id, sales=deltas.sales, profit=deltas.profit, returns=deltas.returns
    ):
        db.session.add(
            ProductAnalytics(
                product_id=product.id,
                business_id=product.business_id,
                total_sales=deltas.sales,
                total_profit=deltas.profit,
                total_returns=deltas.returns,
            )
        )

    line.profit = deltas.recomputed_profit

    if deltas.clamped:
        current_app.logger.warning(
            "Stock clamped at zero: product=%s line=%s action=%s requested=%s applied=%s",
            product.id,
            line.id,
            action.value,
            deltas.requested_stock,
            deltas.stock,
        )

    _expire_cached(product)
    return LedgerEntry(line_id=line.id, product_id=product.id, deltas=deltas)


def apply_order_lines(lines: list[ProductOrder], action: OrderAction | str) -> LedgerResult:
    """
    Apply an action to every line of an order. Does not commit.

    Raises NotFoundError if a referenced product is missing; the caller must
    roll back so no line of the operation persists.
    """
    action = OrderAction(action)
    result = LedgerResult(action=action)
    for line in lines:
        result.entries.append(apply_line(line, action))
    db.session.flush()
    return result
