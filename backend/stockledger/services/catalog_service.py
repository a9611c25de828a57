# Overview: Service-layer operations for categories and suppliers.

"""
Catalog Service

Deleting a category or supplier never orphans products: they are moved to the
business's essential fallback first. Essential entities themselves cannot be
deleted or edited.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Category, Product, Supplier
from ..validation import ConflictError, NotFoundError, enforce_rules_catalog
from .fallback_service import get_default_category, get_default_supplier

CATEGORY_MUTABLE_FIELDS = {"code", "description", "color_code"}
SUPPLIER_MUTABLE_FIELDS = {
    "code", "rut", "name", "fantasy_name", "address", "city", "phone", "email",
}


class EssentialEntityError(ConflictError):
    """Raised on attempts to delete or edit a business's essential entity."""


def _get_scoped(model, entity_id: int, business_id: int | None):
    query = db.session.query(model).filter_by(id=entity_id)
    if business_id is not None:
        query = query.filter_by(business_id=business_id)
    entity = query.first()
    if entity is None:
        raise NotFoundError(f"{model.__name__} not found")
    return entity


def _ensure_code_free(model, business_id: int, code: int, exclude_id: int | None = None) -> None:
    query = db.session.query(model.id).filter(model.business_id == business_id, model.code == code)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"{model.__name__} code {code} already exists for this business.")


def _apply_patch(entity, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(entity, k, v)


def create_category(*, business_id: int, patch: dict) -> dict:
    if patch.get("code") is None:
        raise ValueError("code is required")
    enforce_rules_catalog(patch)
    _ensure_code_free(Category, business_id, patch["code"])

    category = Category(business_id=business_id, is_essential=False)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    db.session.commit()
    return category.to_dict()


def create_supplier(*, business_id: int, patch: dict) -> dict:
    if patch.get("code") is None:
        raise ValueError("code is required")
    enforce_rules_catalog(patch)
    _ensure_code_free(Supplier, business_id, patch["code"])

    supplier = Supplier(business_id=business_id, is_essential=False)
    _apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    if not supplier.fantasy_name:
        supplier.fantasy_name = supplier.name
    db.session.add(supplier)
    db.session.commit()
    return supplier.to_dict()


def update_category(*, category_id: int, patch: dict, business_id: int | None = None) -> dict:
    category = _get_scoped(Category, category_id, business_id)
    if category.is_essential:
        raise EssentialEntityError("The default category cannot be modified.")
    enforce_rules_catalog(patch)
    if "code" in patch and patch["code"] != category.code:
        _ensure_code_free(Category, category.business_id, patch["code"], exclude_id=category.id)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.commit()
    return category.to_dict()


def update_supplier(*, supplier_id: int, patch: dict, business_id: int | None = None) -> dict:
    supplier = _get_scoped(Supplier, supplier_id, business_id)
    if supplier.is_essential:
        raise EssentialEntityError("The default supplier cannot be modified.")
    enforce_rules_catalog(patch)
    if "code" in patch and patch["code"] != supplier.code:
        _ensure_code_free(Supplier, supplier.business_id, patch["code"], exclude_id=supplier.id)
    _apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    db.session.commit()
    return supplier.to_dict()


def delete_category(*, category_id: int, business_id: int | None = None) -> int:
    """
    Delete a category, moving its products to the default category.

    Returns:
        Number of products reassigned
    """
    category = _get_scoped(Category, category_id, business_id)
    if category.is_essential:
        raise EssentialEntityError("The default category cannot be deleted.")

    fallback = get_default_category(category.business_id)
    moved = (
        db.session.query(Product)
        .filter(Product.category_id == category.id)
        .update({Product.category_id: fallback.id}, synchronize_session="fetch")
    )
    db.session.expire(category, ["products"])
    db.session.delete(category)
    db.session.commit()
    return moved


def delete_supplier(*, supplier_id: int, business_id: int | None = None) -> int:
    """
    Delete a supplier, moving its products to the default supplier.

    Returns:
        Number of products reassigned
    """
    supplier = _get_scoped(Supplier, supplier_id, business_id)
    if supplier.is_essential:
        raise EssentialEntityError("The default supplier cannot be deleted.")

    fallback = get_default_supplier(supplier.business_id)
    moved = (
        db.session.query(Product)
        .filter(Product.supplier_id == supplier.id)
        .update({Product.supplier_id: fallback.id}, synchronize_session="fetch")
    )
    db.session.expire(supplier, ["products"])
    db.session.delete(supplier)
    db.session.commit()
    return moved
