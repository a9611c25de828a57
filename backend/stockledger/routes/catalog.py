# Overview: Flask API routes for categories and suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..extensions import db
from ..models import Business, Category, Supplier
from ..services import catalog_service
from ..services.fallback_service import get_default_category, get_default_supplier
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"code", "description", "color_code"},
    required_on_create={"code", "description"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"code", "rut", "name", "fantasy_name", "address", "city", "phone", "email"},
    required_on_create={"code", "name"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")

_ENTITIES = {
    "categories": (Category, CATEGORY_POLICY),
    "suppliers": (Supplier, SUPPLIER_POLICY),
}


def _business_id():
    return request.args.get("business_id", type=int)


def _error_response(e: Exception):
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    return jsonify({"error": str(e)}), 400


@catalog_bp.post("/<kind>")
def create_entity_route(kind: str):
    if kind not in _ENTITIES:
        return jsonify({"error": "Not found"}), 404
    model, policy = _ENTITIES[kind]

    data = request.get_json(silent=True) or {}
    business_id = data.pop("business_id", None)
    if not isinstance(business_id, int):
        return jsonify({"error": "business_id required"}), 400

    try:
        if db.session.get(Business, business_id) is None:
            raise NotFoundError(f"Business {business_id} not found")
        patch = validate_payload(model=model, payload=data, policy=policy, partial=False)
        if model is Category:
            entity = catalog_service.create_category(business_id=business_id, patch=patch)
        else:
            entity = catalog_service.create_supplier(business_id=business_id, patch=patch)
        return jsonify({"item": entity}), 201
    except (ValidationError, ConflictError, NotFoundError) as e:
        return _error_response(e)


@catalog_bp.patch("/<kind>/<int:entity_id>")
def update_entity_route(kind: str, entity_id: int):
    if kind not in _ENTITIES:
        return jsonify({"error": "Not found"}), 404
    model, policy = _ENTITIES[kind]

    try:
        patch = validate_payload(
            model=model, payload=request.get_json(silent=True), policy=policy, partial=True
        )
        if model is Category:
            entity = catalog_service.update_category(
                category_id=entity_id, patch=patch, business_id=_business_id()
            )
        else:
            entity = catalog_service.update_supplier(
                supplier_id=entity_id, patch=patch, business_id=_business_id()
            )
        return jsonify({"item": entity}), 200
    except (ValidationError, ConflictError, NotFoundError) as e:
        return _error_response(e)


@catalog_bp.delete("/<kind>/<int:entity_id>")
def delete_entity_route(kind: str, entity_id: int):
    """Delete a category or supplier; its products move to the business default."""
    if kind not in _ENTITIES:
        return jsonify({"error": "Not found"}), 404

    try:
        if kind == "categories":
            moved = catalog_service.delete_category(category_id=entity_id, business_id=_business_id())
        else:
            moved = catalog_service.delete_supplier(supplier_id=entity_id, business_id=_business_id())
        return jsonify({"ok": True, "reassigned_products": moved}), 200
    except (ConflictError, NotFoundError) as e:
        return _error_response(e)


@catalog_bp.get("/<kind>/default")
def default_entity_route(kind: str):
    """Return the business's essential category or supplier, creating it on first use."""
    business_id = _business_id()
    if kind not in _ENTITIES or business_id is None:
        return jsonify({"error": "Not found"}), 404

    try:
        entity = get_default_category(business_id) if kind == "categories" else get_default_supplier(business_id)
        db.session.commit()
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    return jsonify({"item": entity.to_dict()}), 200
