# Overview: Pure stock/analytics rules for order lines; no database access.

"""
Order-line ledger rules.

Every finished order line moves four numbers: product stock and the three
analytics counters (sales, profit, returns). The direction of the move is
decided by two things only: the lifecycle action being applied and the line
type. The table below lists all twelve (action, type) pairs explicitly.

    action              RETURN                      SALE / PROMO
    CREATE, UNDISCARD   stock +q  sales -q          stock -q  sales +q
                        profit -P returns +q        profit +P
    DELETE, DISCARD     stock -q  sales +q          stock +q  sales -q
                        profit +P returns -q        profit -P

P = (selling_price - cost) * q, read from the product at application time.

Stock never goes negative: a stock delta that would take it below zero is
clamped so stock lands exactly on zero. A clamped line is flagged because
its later reversal will not restore the previous stock exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OrderAction(str, Enum):
    CREATE = "CREATE"
    DELETE = "DELETE"
    DISCARD = "DISCARD"
    UNDISCARD = "UNDISCARD"


class LineType(str, Enum):
    SALE = "SALE"
    RETURN = "RETURN"
    PROMO = "PROMO"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    FINISHED = "FINISHED"
    DISCARDED = "DISCARDED"


@dataclass(frozen=True)
class DeltaSigns:
    """Per-unit direction of each counter (multiplied by quantity or total profit)."""
    stock: int
    sales: int
    profit: int
    returns: int


_SALE_EFFECT = DeltaSigns(stock=-1, sales=1, profit=1, returns=0)
_SALE_UNDO = DeltaSigns(stock=1, sales=-1, profit=-1, returns=0)
_RETURN_EFFECT = DeltaSigns(stock=1, sales=-1, profit=-1, returns=1)
_RETURN_UNDO = DeltaSigns(stock=-1, sales=1, profit=1, returns=-1)

DELTA_TABLE: dict[tuple[OrderAction, LineType], DeltaSigns] = {
    (OrderAction.CREATE, LineType.SALE): _SALE_EFFECT,
    (OrderAction.CREATE, LineType.PROMO): _SALE_EFFECT,
    (OrderAction.CREATE, LineType.RETURN): _RETURN_EFFECT,
    (OrderAction.UNDISCARD, LineType.SALE): _SALE_EFFECT,
    (OrderAction.UNDISCARD, LineType.PROMO): _SALE_EFFECT,
    (OrderAction.UNDISCARD, LineType.RETURN): _RETURN_EFFECT,
    (OrderAction.DELETE, LineType.SALE): _SALE_UNDO,
    (OrderAction.DELETE, LineType.PROMO): _SALE_UNDO,
    (OrderAction.DELETE, LineType.RETURN): _RETURN_UNDO,
    (OrderAction.DISCARD, LineType.SALE): _SALE_UNDO,
    (OrderAction.DISCARD, LineType.PROMO): _SALE_UNDO,
    (OrderAction.DISCARD, LineType.RETURN): _RETURN_UNDO,
}


@dataclass(frozen=True)
class LineDeltas:
    stock: int
    sales: int
    profit: int
    returns: int
    recomputed_profit: int
    requested_stock: int
    clamped: bool

    def to_dict(self) -> dict:
        return {
            "stock_delta": self.stock,
            "sales_delta": self.sales,
            "profit_delta": self.profit,
            "returns_delta": self.returns,
            "recomputed_profit": self.recomputed_profit,
            "requested_stock_delta": self.requested_stock,
            "clamped": self.clamped,
        }


def calculate_line_profit(
    total_price: int,
    total_discount: int,
    cost: int,
    quantity: int,
    line_type: LineType | str,
) -> int:
    """
    Profit stored on an order line.

    A return adds the cost back because it reverses the cost deduction of the
    sale it undoes.
    """
    line_type = LineType(line_type)
    if line_type is LineType.RETURN:
        return total_price - total_discount + cost * quantity
    return total_price - total_discount - cost * quantity


def clamp_stock_delta(current_stock: int, delta: int) -> int:
    """Return a delta that never takes stock below zero."""
    if current_stock + delta < 0:
        return -current_stock
    return delta


def compute_line_deltas(
    *,
    action: OrderAction | str,
    line_type: LineType | str,
    quantity: int,
    cost: int,
    selling_price: int,
    current_stock: int,
    total_price: int,
    total_discount: int,
) -> LineDeltas:
    action = OrderAction(action)
    line_type = LineType(line_type)
    signs = DELTA_TABLE[(action, line_type)]

    total_profit = (selling_price - cost) * quantity
    requested_stock = signs.stock * quantity
    stock = clamp_stock_delta(current_stock, requested_stock)

    return LineDeltas(
        stock=stock,
        sales=signs.sales * quantity,
        profit=signs.profit * total_profit,
        returns=signs.returns * quantity,
        recomputed_profit=calculate_line_profit(
            total_price, total_discount, cost, quantity, line_type
        ),
        requested_stock=requested_stock,
        clamped=stock != requested_stock,
    )
