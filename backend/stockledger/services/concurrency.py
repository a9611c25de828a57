# Overview: Row locking and guarded in-database increments for stock and counters.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product, ProductAnalytics


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def guarded_stock_increment(product_id: int, delta: int) -> bool:
    """
    Apply ``stock = stock + delta`` only if the result stays non-negative.

    Executed as a single conditional UPDATE so two writers can never both
    consume the same units. Returns False when no row matched (the product
    is gone or its stock moved under us).
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .where(Product.stock + delta >= 0)
        .values(stock=Product.stock + delta)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_analytics(product_id: int, *, sales: int, profit: int, returns: int) -> bool:
    """Increment the analytics counters in the database. False if the row is missing."""
    result = db.session.execute(
        update(ProductAnalytics)
        .where(ProductAnalytics.product_id == product_id)
        .values(
            total_sales=ProductAnalytics.total_sales + sales,
            total_profit=ProductAnalytics.total_profit + profit,
            total_returns=ProductAnalytics.total_returns + returns,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
