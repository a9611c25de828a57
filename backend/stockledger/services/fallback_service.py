# Overview: Service-layer operations for default (essential) categories and suppliers.

"""
Fallback entity resolver.

Every business has one protected Category ("General") and one protected
Supplier ("Proveedor Propio"). They are created on first use, not when the
business is created, and receive products whose classification is missing
or invalid.

Creation is an idempotent upsert: the insert runs in a savepoint and the
partial unique index on (business_id) WHERE is_essential makes a concurrent
second insert fail; the loser re-reads and returns the winner's row.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Business, Category, Supplier
from ..validation import NotFoundError

DEFAULT_CATEGORY_DESCRIPTION = "General"
DEFAULT_CATEGORY_COLOR = "#64748B"
DEFAULT_SUPPLIER_FANTASY_NAME = "Proveedor Propio"
NO_DATA = "Sin Datos"
SENTINEL_CODE = 0


def _find_essential(model, business_id: int):
    return (
        db.session.query(model)
        .filter_by(business_id=business_id, is_essential=True)
        .first()
    )


def _free_code(model, business_id: int) -> int:
    taken = (
        db.session.query(model.id)
        .filter_by(business_id=business_id, code=SENTINEL_CODE)
        .first()
    )
    if taken is None:
        return SENTINEL_CODE
    highest = (
        db.session.query(func.max(model.code))
        .filter(model.business_id == business_id)
        .scalar()
    )
    return int(highest or 0) + 1


def _get_or_create_essential(model, business_id: int, build):
    existing = _find_essential(model, business_id)
    if existing is not None:
        return existing

    business = db.session.get(Business, business_id)
    if business is None:
        raise NotFoundError(f"Business {business_id} not found")

    entity = build(business, _free_code(model, business_id))
    try:
        with db.session.begin_nested():
            db.session.add(entity)
    except IntegrityError:
        # Lost the race to a concurrent creator; its row is now visible.
        existing = _find_essential(model, business_id)
        if existing is None:
            raise
        return existing
    return entity


def _build_category(business: Business, code: int) -> Category:
    return Category(
        business_id=business.id,
        code=code,
        description=DEFAULT_CATEGORY_DESCRIPTION,
        color_code=DEFAULT_CATEGORY_COLOR,
        is_essential=True,
    )


def _build_supplier(business: Business, code: int) -> Supplier:
    return Supplier(
        business_id=business.id,
        code=code,
        rut=NO_DATA,
        name=business.name or NO_DATA,
        address=NO_DATA,
        city=NO_DATA,
        fantasy_name=DEFAULT_SUPPLIER_FANTASY_NAME,
        phone=NO_DATA,
        email=business.email or NO_DATA,
        is_essential=True,
    )


def get_default_category(business_id: int) -> Category:
    """Return the business's essential category, creating it on first use. Does not commit."""
    return _get_or_create_essential(Category, business_id, _build_category)


def get_default_supplier(business_id: int) -> Supplier:
    """Return the business's essential supplier, creating it on first use. Does not commit."""
    return _get_or_create_essential(Supplier, business_id, _build_supplier)
