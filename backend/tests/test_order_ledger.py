"""
Order-line ledger against the database: stock, analytics counters, clamping
and transaction boundaries.
"""

import pytest

from stockledger.models import Order, ProductAnalytics, ProductOrder
from stockledger.services.ledger_rules import OrderAction
from stockledger.services.order_ledger_service import StockConflictError, apply_line, apply_order_lines
from stockledger.services import order_ledger_service
from stockledger.validation import NotFoundError


def _order_with_line(db_session, business, product, quantity=3, line_type="SALE", total_price=None):
    order = Order(business_id=business.id, status="FINISHED")
    db_session.add(order)
    db_session.flush()
    line = ProductOrder(
        order_id=order.id,
        product_id=product.id,
        quantity=quantity,
        type=line_type,
        total_price=total_price if total_price is not None else product.selling_price * quantity,
        total_discount=0,
    )
    db_session.add(line)
    db_session.commit()
    return order, line


def _analytics(db_session, product):
    return db_session.query(ProductAnalytics).filter_by(product_id=product.id).one()


class TestApplyLine:
    """Single-line effects on stock and analytics."""

    def test_create_then_delete_restores_state(self, db_session, business, product):
        """stock=10, cost=100, price=150: a 3-unit sale and its deletion cancel out."""
        _, line = _order_with_line(db_session, business, product)

        apply_line(line, OrderAction.CREATE)
        db_session.commit()
        db_session.expire_all()
        assert product.stock == 7
        analytics = _analytics(db_session, product)
        assert analytics.total_sales == 3
        assert analytics.total_profit == 150

        apply_line(line, OrderAction.DELETE)
        db_session.commit()
        db_session.expire_all()
        assert product.stock == 10
        analytics = _analytics(db_session, product)
        assert analytics.total_sales == 0
        assert analytics.total_profit == 0

    def test_return_line(self, db_session, business, product):
        _, line = _order_with_line(db_session, business, product, quantity=2, line_type="RETURN")

        apply_line(line, OrderAction.CREATE)
        db_session.commit()
        db_session.expire_all()

        assert product.stock == 12
        analytics = _analytics(db_session, product)
        assert analytics.total_returns == 2
        assert analytics.total_sales == -2
        assert analytics.total_profit == -100

    def test_line_profit_recomputed(self, db_session, business, product):
        _, line = _order_with_line(db_session, business, product, quantity=2, total_price=280)
        line.profit = 999
        db_session.commit()

        apply_line(line, OrderAction.CREATE)
        db_session.commit()
        db_session.expire_all()

        assert db_session.get(ProductOrder, line.id).profit == 80

    def test_reads_current_product_values(self, db_session, business, product):
        _, line = _order_with_line(db_session, business, product, quantity=1)

        # Change the price directly in the database; the ORM copy is stale
        db_session.execute(
            product.__table__.update().where(product.__table__.c.id == product.id).values(selling_price=300, stock=4)
        )
        db_session.commit()

        entry = apply_line(line, OrderAction.CREATE)
        db_session.commit()

        assert entry.deltas.profit == 200
        db_session.expire_all()
        assert product.stock == 3

    def test_clamp_floors_stock_at_zero(self, db_session, business, make_product):
        product = make_product(code="LOW", stock=2)
        _, line = _order_with_line(db_session, business, product, quantity=5)

        entry = apply_line(line, OrderAction.CREATE)
        db_session.commit()
        db_session.expire_all()

        assert product.stock == 0
        assert entry.deltas.clamped is True
        assert entry.deltas.requested_stock == -5
        assert _analytics(db_session, product).total_sales == 5

    def test_clamped_reversal_is_not_exact(self, db_session, business, make_product):
        product = make_product(code="LOW", stock=2)
        _, line = _order_with_line(db_session, business, product, quantity=5)

        apply_line(line, OrderAction.CREATE)
        apply_line(line, OrderAction.DELETE)
        db_session.commit()
        db_session.expire_all()

        assert product.stock == 5

    def test_missing_analytics_row_is_created(self, db_session, business, make_product):
        product = make_product(code="NOAN", with_analytics=False)
        _, line = _order_with_line(db_session, business, product, quantity=4)

        apply_line(line, OrderAction.CREATE)
        db_session.commit()

        analytics = _analytics(db_session, product)
        assert analytics.total_sales == 4
        assert analytics.total_profit == 200

    def test_missing_product_raises(self, db_session, business, product):
        _, line = _order_with_line(db_session, business, product)
        line.product_id = product.id + 1000

        with pytest.raises(NotFoundError):
            apply_line(line, OrderAction.CREATE)
        db_session.rollback()


class TestApplyOrderLines:
    """Whole-order application inside one transaction."""

    def test_all_lines_applied(self, db_session, business, make_product):
        a = make_product(code="A", stock=10)
        b = make_product(code="B", stock=5)
        order, line_a = _order_with_line(db_session, business, a, quantity=2)
        line_b = ProductOrder(order_id=order.id, product_id=b.id, quantity=1, type="PROMO", total_price=150)
        db_session.add(line_b)
        db_session.commit()

        result = apply_order_lines([line_a, line_b], "CREATE")
        db_session.commit()
        db_session.expire_all()

        assert [e.line_id for e in result.entries] == [line_a.id, line_b.id]
        assert a.stock == 8
        assert b.stock == 4
        assert result.clamped_lines == []

    def test_same_product_twice_accumulates(self, db_session, business, product):
        order, first = _order_with_line(db_session, business, product, quantity=2)
        second = ProductOrder(order_id=order.id, product_id=product.id, quantity=3, type="SALE", total_price=450)
        db_session.add(second)
        db_session.commit()

        apply_order_lines([first, second], OrderAction.CREATE)
        db_session.commit()
        db_session.expire_all()

        assert product.stock == 5
        assert _analytics(db_session, product).total_sales == 5

    def test_failure_rolls_back_every_line(self, db_session, business, make_product):
        a = make_product(code="A", stock=10)
        b = make_product(code="B", stock=10)
        order, line_a = _order_with_line(db_session, business, a, quantity=2)
        ghost = ProductOrder(order_id=order.id, product_id=b.id, quantity=1, type="SALE", total_price=150)
        db_session.add(ghost)
        db_session.commit()
        ghost.product_id = b.id + 1000

        with pytest.raises(NotFoundError):
            apply_order_lines([line_a, ghost], OrderAction.CREATE)
        db_session.rollback()
        db_session.expire_all()

        assert a.stock == 10
        assert _analytics(db_session, a).total_sales == 0

    def test_result_reports_clamped_lines(self, db_session, business, make_product):
        product = make_product(code="LOW", stock=1)
        _, line = _order_with_line(db_session, business, product, quantity=3)

        result = apply_order_lines([line], OrderAction.CREATE)
        db_session.commit()

        payload = result.to_dict()
        assert payload["action"] == "CREATE"
        assert payload["clamped_line_ids"] == [line.id]
        assert payload["entries"][0]["stock_delta"] == -1


class TestGuardedUpdate:
    """The conditional UPDATE refuses to drive stock negative."""

    def test_retries_then_gives_up(self, app, db_session, business, product, monkeypatch):
        _, line = _order_with_line(db_session, business, product, quantity=1)
        calls = []

        def always_lose(product_id, delta):
            calls.append(delta)
            return False

        monkeypatch.setattr(order_ledger_service, "guarded_stock_increment", always_lose)

        with pytest.raises(StockConflictError):
            apply_line(line, OrderAction.CREATE)
        db_session.rollback()

        assert len(calls) == app.config["STOCK_UPDATE_ATTEMPTS"]

    def test_recomputes_after_lost_race(self, db_session, business, make_product, monkeypatch):
        product = make_product(code="RACE", stock=3)
        _, line = _order_with_line(db_session, business, product, quantity=3)
        real = order_ledger_service.guarded_stock_increment
        seen = []

        def lose_once(product_id, delta):
            seen.append(delta)
            if len(seen) == 1:
                # Another cashier sold two units first
                real(product_id, -2)
                return False
            return real(product_id, delta)

        monkeypatch.setattr(order_ledger_service, "guarded_stock_increment", lose_once)

        entry = apply_line(line, OrderAction.CREATE)
        db_session.commit()
        db_session.expire_all()

        assert seen == [-3, -1]
        assert entry.deltas.clamped is True
        assert product.stock == 0
