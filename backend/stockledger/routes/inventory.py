# Overview: Flask API routes for products and spreadsheet imports; parses input and returns JSON responses.

# backend/stockledger/routes/inventory.py
"""
Inventory routes.

Products are created one at a time or in bulk from the xlsx template. Stock
is never edited here after creation: it moves only through order lines.
"""
import io

from flask import Blueprint, request, jsonify, current_app, send_file

from ..extensions import db
from ..models import Business, Category, Product, Supplier
from ..services import products_service
from ..services.import_service import import_products, InventoryImportError
from ..services.import_template import generate_inventory_template
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "cost", "selling_price", "stock", "category_id", "supplier_id"},
    required_on_create={"code", "name"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "cost", "selling_price", "category_id", "supplier_id"},
)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _business_id():
    return request.args.get("business_id", type=int)


@inventory_bp.post("/products")
def create_product_route():
    """
    Body: {"business_id": int, "code": str, "name": str, "cost": int,
           "selling_price": int, "stock": int, "category_id": int, "supplier_id": int}
    """
    data = request.get_json(silent=True) or {}
    business_id = data.pop("business_id", None)
    if not isinstance(business_id, int):
        return jsonify({"error": "business_id required"}), 400

    try:
        if db.session.get(Business, business_id) is None:
            raise NotFoundError(f"Business {business_id} not found")
        patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(business_id=business_id, patch=patch)
        return jsonify({"product": product}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409


@inventory_bp.get("/products/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id, _business_id())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product": product.to_dict()}), 200


@inventory_bp.get("/products/<int:product_id>/status")
def product_status_route(product_id: int):
    try:
        product = products_service.get_product(product_id, _business_id())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(products_service.get_product_status(product)), 200


@inventory_bp.patch("/products/<int:product_id>")
def update_product_route(product_id: int):
    """
    Edit master data. Stock is not accepted here.

    Body: any of {"code", "name", "cost", "selling_price", "category_id", "supplier_id"}
    """
    try:
        patch = validate_payload(
            model=Product, payload=request.get_json(silent=True), policy=PRODUCT_UPDATE_POLICY, partial=True
        )
        enforce_rules_product(patch)
        product = products_service.update_product(
            product_id=product_id, patch=patch, business_id=_business_id()
        )
        return jsonify({"product": product}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409


@inventory_bp.put("/products/<int:product_id>/status")
def set_product_status_route(product_id: int):
    """Body: {"is_active": bool}. Activation is refused while cost or price is invalid."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("is_active"), bool):
        return jsonify({"error": "is_active must be a boolean"}), 400

    try:
        product = products_service.set_product_active(
            product_id=product_id, active=data["is_active"], business_id=_business_id()
        )
        return jsonify({"product": product}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409


@inventory_bp.delete("/products/<int:product_id>")
def delete_product_route(product_id: int):
    """Soft delete; the product stays referenced by past orders."""
    try:
        product = products_service.soft_delete_product(product_id=product_id, business_id=_business_id())
        return jsonify({"product": product}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@inventory_bp.post("/products/<int:product_id>/restore")
def restore_product_route(product_id: int):
    try:
        product = products_service.restore_product(product_id=product_id, business_id=_business_id())
        return jsonify({"product": product}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@inventory_bp.post("/import")
def import_route():
    """
    Bulk product import from the inventory template.

    Form data: file (xlsx), business_id
    """
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400
    business_id = request.form.get("business_id", type=int)
    if business_id is None:
        return jsonify({"error": "business_id required"}), 400

    file = request.files["file"]
    try:
        result = import_products(io.BytesIO(file.stream.read()), business_id)
        current_app.logger.info(
            "Imported %s products for business %s (%s errors, %s warnings)",
            result["created"], business_id, len(result["errors"]), len(result["warnings"]),
        )
        return jsonify(result), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InventoryImportError as e:
        current_app.logger.exception("Failed to import products")
        return jsonify({"error": str(e)}), 500


@inventory_bp.get("/template")
def template_route():
    """Download an empty import template listing the business's codes."""
    business_id = _business_id()
    if business_id is None or db.session.get(Business, business_id) is None:
        return jsonify({"error": "Business not found"}), 404

    categories = db.session.query(Category).filter_by(business_id=business_id).order_by(Category.code).all()
    suppliers = db.session.query(Supplier).filter_by(business_id=business_id).order_by(Supplier.code).all()
    content = generate_inventory_template(categories, suppliers)
    return send_file(
        io.BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name="plantilla_inventario.xlsx",
    )
