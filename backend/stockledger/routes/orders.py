# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/stockledger/routes/orders.py
"""
Order lifecycle routes.

Every status transition answers with the updated order and the ledger
entries it produced. clamped_line_ids lists lines whose stock change was cut
at zero; their later reversal will not be exact.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service
from ..services.order_service import OrderError
from ..validation import NotFoundError, ConflictError, ValidationError, enforce_rules_order_line

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _business_id():
    return request.args.get("business_id", type=int)


def _log_clamps(payload: dict, order_id: int) -> dict:
    if payload.get("clamped_line_ids"):
        current_app.logger.warning(
            "Order %s transition clamped stock on lines %s", order_id, payload["clamped_line_ids"]
        )
    return payload


def _run(order_id: int, fn, failure_message: str):
    try:
        payload = fn(order_id, _business_id())
        return jsonify(_log_clamps(payload, order_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception(failure_message)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("")
def create_order_route():
    """
    Create a new PENDING order.

    Body: {"business_id": int, "seller_id": int (optional)}
    """
    data = request.get_json(silent=True) or {}
    business_id = data.get("business_id")
    if not isinstance(business_id, int):
        return jsonify({"error": "business_id required"}), 400

    try:
        order = order_service.create_order(business_id, data.get("seller_id"))
        return jsonify({"order": order.to_dict(include_lines=True)}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id, _business_id())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict(include_lines=True)}), 200


@orders_bp.patch("/<int:order_id>")
def update_order_route(order_id: int):
    """
    Edit payment data of an order; the total is recomputed.

    Body: {"payment_method": "Efectivo|Crédito|Débito" (optional),
           "direct_discount": int (optional)}
    """
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.update_order(
            order_id,
            payment_method=data.get("payment_method"),
            direct_discount=data.get("direct_discount"),
            business_id=_business_id(),
        )
        return jsonify({"order": order.to_dict(include_lines=True)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/lines")
def add_line_route(order_id: int):
    """
    Add a line to a pending order.

    Body: {"product_id": int, "quantity": int, "type": "SALE|RETURN|PROMO",
           "total_price": int (optional), "total_discount": int (optional)}
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")
    if not isinstance(product_id, int):
        return jsonify({"error": "product_id and quantity required"}), 400

    try:
        enforce_rules_order_line(data)
        line = order_service.add_line(
            order_id,
            product_id,
            data["quantity"],
            data.get("type", "SALE"),
            total_price=data.get("total_price"),
            total_discount=data.get("total_discount") or 0,
            business_id=_business_id(),
        )
        return jsonify({"line": line.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to add order line")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>/lines/<int:line_id>")
def remove_line_route(order_id: int, line_id: int):
    try:
        order_service.remove_line(order_id, line_id, _business_id())
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to remove order line")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/finish")
def finish_order_route(order_id: int):
    """PENDING -> FINISHED; applies every line to stock and analytics."""
    return _run(order_id, order_service.finish_order, "Failed to finish order")


@orders_bp.post("/<int:order_id>/discard")
def discard_order_route(order_id: int):
    """-> DISCARDED; undoes line effects when the order was finished."""
    return _run(order_id, order_service.discard_order, "Failed to discard order")


@orders_bp.post("/<int:order_id>/restore")
def restore_order_route(order_id: int):
    """DISCARDED -> FINISHED; re-applies line effects."""
    return _run(order_id, order_service.restore_order, "Failed to restore order")


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    """Delete an order, undoing line effects when they are applied."""
    return _run(order_id, order_service.delete_order, "Failed to delete order")


@orders_bp.patch("/<int:order_id>/status")
def set_status_route(order_id: int):
    """Body: {"status": "FINISHED|DISCARDED"}"""
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status required"}), 400

    def transition(oid, business_id):
        return order_service.set_order_status(oid, status, business_id)

    return _run(order_id, transition, "Failed to change order status")
