"""
Order Service - order lifecycle and line editing

Lines are edited only while an order is PENDING. Status transitions drive
the order-line ledger, each inside one transaction:

    finish   PENDING   -> FINISHED   CREATE on every line
    discard  FINISHED  -> DISCARDED  DISCARD on every line
             PENDING   -> DISCARDED  nothing applied, nothing to undo
    restore  DISCARDED -> FINISHED   UNDISCARD (only orders that were finished)
    delete   any                     DELETE if effects are applied, then remove

If any line fails (missing product, database error) the whole transition is
rolled back.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Business, Order, Product, ProductOrder
from ..time_utils import utcnow
from ..validation import NotFoundError
from .concurrency import lock_for_update
from .ledger_rules import LineType, OrderAction, OrderStatus, calculate_line_profit
from .order_ledger_service import LedgerResult, apply_order_lines


PAYMENT_METHODS = ("Efectivo", "Crédito", "Débito")


class OrderError(Exception):
    """Raised for invalid order operations (wrong status, bad line)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _get_order(order_id: int, business_id: int | None = None, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if business_id is not None:
        query = query.filter_by(business_id=business_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def get_order(order_id: int, business_id: int | None = None) -> Order:
    return _get_order(order_id, business_id)


def _require_status(order: Order, *allowed: OrderStatus) -> None:
    if order.status not in {s.value for s in allowed}:
        raise OrderError(
            f"Order {order.id} is {order.status}",
            details={"status": order.status, "allowed": [s.value for s in allowed]},
        )


def recalculate_totals(order: Order) -> None:
    """Returns subtract from the subtotal; discounts reduce the total."""
    subtotal = 0
    discount = 0
    for line in order.lines:
        sign = -1 if line.type == LineType.RETURN.value else 1
        subtotal += sign * line.total_price
        discount += line.total_discount
    order.subtotal = subtotal
    order.total_discount = discount
    order.total = subtotal - discount - (order.direct_discount or 0)


def _run_transition(order: Order, action: OrderAction | None, mutate) -> LedgerResult | None:
    try:
        result = apply_order_lines(list(order.lines), action) if action else None
        mutate()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return result


def _ledger_payload(result: LedgerResult | None) -> dict:
    return {
        "ledger": result.to_dict() if result else None,
        "clamped_line_ids": [e.line_id for e in result.clamped_lines] if result else [],
    }


def _transition_payload(order: Order, result: LedgerResult | None) -> dict:
    return {"order": order.to_dict(include_lines=True), **_ledger_payload(result)}


def create_order(business_id: int, seller_id: int | None = None) -> Order:
    """Create a new PENDING order."""
    if db.session.get(Business, business_id) is None:
        raise NotFoundError(f"Business {business_id} not found")
    order = Order(
        business_id=business_id,
        seller_id=seller_id,
        status=OrderStatus.PENDING.value,
        ledger_applied=False,
    )
    db.session.add(order)
    db.session.commit()
    return order


def add_line(
    order_id: int,
    product_id: int,
    quantity: int,
    line_type: LineType | str = LineType.SALE,
    *,
    total_price: int | None = None,
    total_discount: int = 0,
    business_id: int | None = None,
) -> ProductOrder:
    """Add a product to a pending order. total_price defaults to selling_price * quantity."""
    order = _get_order(order_id, business_id)
    _require_status(order, OrderStatus.PENDING)

    try:
        line_type = LineType(line_type)
    except ValueError:
        raise OrderError(f"Unknown line type: {line_type}")
    if quantity <= 0:
        raise OrderError("quantity must be > 0")

    product = (
        db.session.query(Product)
        .filter_by(id=product_id, business_id=order.business_id)
        .first()
    )
    if product is None or product.is_deleted:
        raise NotFoundError("Product not found")

    if total_price is None:
        total_price = product.selling_price * quantity

    line = ProductOrder(
        order_id=order.id,
        product_id=product.id,
        quantity=quantity,
        type=line_type.value,
        total_price=total_price,
        total_discount=total_discount or 0,
        profit=calculate_line_profit(
            total_price, total_discount or 0, product.cost, quantity, line_type
        ),
    )
    order.lines.append(line)
    recalculate_totals(order)
    db.session.commit()
    return line


def remove_line(order_id: int, line_id: int, business_id: int | None = None) -> None:
    """Remove a line from a pending order. Pending lines have no stock effect."""
    order = _get_order(order_id, business_id)
    _require_status(order, OrderStatus.PENDING)

    line = next((l for l in order.lines if l.id == line_id), None)
    if line is None:
        raise NotFoundError("Order line not found")
    order.lines.remove(line)
    recalculate_totals(order)
    db.session.commit()


def update_order(
    order_id: int,
    *,
    payment_method: str | None = None,
    direct_discount: int | None = None,
    business_id: int | None = None,
) -> Order:
    """
    Edit payment method and direct discount; the total is recomputed.

    Allowed in any status: neither field moves stock or analytics.
    """
    order = _get_order(order_id, business_id, lock=True)

    if payment_method is not None:
        if payment_method not in PAYMENT_METHODS:
            raise OrderError(
                f"Unknown payment method: {payment_method}",
                details={"allowed": list(PAYMENT_METHODS)},
            )
        order.payment_method = payment_method
    if direct_discount is not None:
        if isinstance(direct_discount, bool) or not isinstance(direct_discount, int) or direct_discount < 0:
            raise OrderError("direct_discount must be an integer >= 0")
        order.direct_discount = direct_discount

    recalculate_totals(order)
    db.session.commit()
    return order


def finish_order(order_id: int, business_id: int | None = None) -> dict:
    order = _get_order(order_id, business_id, lock=True)
    _require_status(order, OrderStatus.PENDING)
    if not order.lines:
        raise OrderError("Cannot finish an order without lines")

    def mutate():
        recalculate_totals(order)
        order.status = OrderStatus.FINISHED.value
        order.ledger_applied = True
        order.completed_at = utcnow()

    result = _run_transition(order, OrderAction.CREATE, mutate)
    return _transition_payload(order, result)


def discard_order(order_id: int, business_id: int | None = None) -> dict:
    order = _get_order(order_id, business_id, lock=True)
    _require_status(order, OrderStatus.PENDING, OrderStatus.FINISHED)
    action = OrderAction.DISCARD if order.ledger_applied else None

    def mutate():
        order.status = OrderStatus.DISCARDED.value
        order.ledger_applied = False

    result = _run_transition(order, action, mutate)
    return _transition_payload(order, result)


def restore_order(order_id: int, business_id: int | None = None) -> dict:
    order = _get_order(order_id, business_id, lock=True)
    _require_status(order, OrderStatus.DISCARDED)
    if order.completed_at is None:
        raise OrderError("Only orders that were finished can be restored")

    def mutate():
        recalculate_totals(order)
        order.status = OrderStatus.FINISHED.value
        order.ledger_applied = True

    result = _run_transition(order, OrderAction.UNDISCARD, mutate)
    return _transition_payload(order, result)


def delete_order(order_id: int, business_id: int | None = None) -> dict:
    """Delete an order and its lines, undoing their effects if currently applied."""
    order = _get_order(order_id, business_id, lock=True)
    action = OrderAction.DELETE if order.ledger_applied else None
    deleted_id = order.id

    result = _run_transition(order, action, lambda: db.session.delete(order))
    return {"deleted_order_id": deleted_id, **_ledger_payload(result)}


def set_order_status(order_id: int, status: OrderStatus | str, business_id: int | None = None) -> dict:
    """Move an order to a target status through the matching transition."""
    try:
        status = OrderStatus(status)
    except ValueError:
        raise OrderError(f"Unknown order status: {status}")

    order = _get_order(order_id, business_id)
    if order.status == status.value:
        return _transition_payload(order, None)

    if status is OrderStatus.DISCARDED:
        return discard_order(order_id, business_id)
    if status is OrderStatus.FINISHED:
        if order.status == OrderStatus.DISCARDED.value:
            return restore_order(order_id, business_id)
        return finish_order(order_id, business_id)
    raise OrderError(f"Cannot move an order back to {status.value}")
