# backend/stockledger/services/products_service.py
"""
Products Service

Creation, soft deletion and restoration of products. Stock and analytics
counters are set here only when a product is born; afterwards the order-line
ledger owns them.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Category, Product, ProductAnalytics, Supplier
from ..time_utils import to_utc_z_millis, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .fallback_service import get_default_category, get_default_supplier

REMOVED_PREFIX = "REMOVED-"


def compute_is_active(cost: int, selling_price: int, stock: int) -> bool:
    """A product can only be sold when it has a cost, a price and units on hand."""
    return cost > 0 and selling_price > 0 and stock > 0


def removed_code(code: str, when=None) -> str:
    stamp = to_utc_z_millis(when or utcnow())
    return f"{REMOVED_PREFIX}{stamp}-{code}"


def original_code(code: str) -> str | None:
    """Recover the pre-deletion code from a REMOVED-<timestamp>-<code> tag."""
    if not code.startswith(REMOVED_PREFIX):
        return None
    # The timestamp ends in 'Z' and contains no further 'Z-' sequence.
    _, sep, rest = code[len(REMOVED_PREFIX):].partition("Z-")
    return rest if sep else None


def get_product(product_id: int, business_id: int | None = None) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if business_id is not None:
        query = query.filter_by(business_id=business_id)
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _code_taken(business_id: int, code: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(
        Product.business_id == business_id, Product.code == code
    )
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def _resolve_category_id(business_id: int, category_id: int | None) -> int:
    if category_id is not None:
        category = (
            db.session.query(Category)
            .filter_by(id=category_id, business_id=business_id)
            .first()
        )
        if category is not None:
            return category.id
    return get_default_category(business_id).id


def _resolve_supplier_id(business_id: int, supplier_id: int | None) -> int:
    if supplier_id is not None:
        supplier = (
            db.session.query(Supplier)
            .filter_by(id=supplier_id, business_id=business_id)
            .first()
        )
        if supplier is not None:
            return supplier.id
    return get_default_supplier(business_id).id


def create_product(*, business_id: int, patch: dict) -> dict:
    """
    Create a single product together with its analytics row.

    Unknown or foreign category/supplier ids fall back to the business
    defaults. is_active is derived, never taken from the client.

    Raises:
        ConflictError: If the code already exists for this business
    """
    code = patch.get("code")
    if not code:
        raise ValueError("code is required")
    if _code_taken(business_id, code):
        raise ConflictError("Product code already exists for this business.")

    cost = int(patch.get("cost") or 0)
    selling_price = int(patch.get("selling_price") or 0)
    stock = int(patch.get("stock") or 0)

    product = Product(
        business_id=business_id,
        code=code,
        name=patch["name"],
        cost=cost,
        selling_price=selling_price,
        stock=stock,
        is_active=compute_is_active(cost, selling_price, stock),
        category_id=_resolve_category_id(business_id, patch.get("category_id")),
        supplier_id=_resolve_supplier_id(business_id, patch.get("supplier_id")),
    )
    db.session.add(product)
    db.session.flush()

    db.session.add(ProductAnalytics(product_id=product.id, business_id=business_id))
    db.session.commit()
    return product.to_dict()


def soft_delete_product(*, product_id: int, business_id: int | None = None) -> dict:
    """
    Soft-delete a product.

    The code is rewritten to REMOVED-<timestamp>-<code> so a new product can
    reuse it, while order history keeps pointing at this row.
    """
    product = get_product(product_id, business_id)
    if product.is_deleted:
        return product.to_dict()

    now = utcnow()
    product.code = removed_code(product.code, now)
    product.is_active = False
    product.is_deleted = True
    product.deleted_at = now
    db.session.commit()
    return product.to_dict()


def restore_product(*, product_id: int, business_id: int | None = None) -> dict:
    """
    Undo a soft delete.

    The original code comes back only if no live product took it meanwhile;
    otherwise the REMOVED- code stays and must be edited by hand. The product
    stays inactive until it is activated explicitly.
    """
    product = get_product(product_id, business_id)
    if not product.is_deleted:
        return product.to_dict()

    previous = original_code(product.code)
    if previous and not _code_taken(product.business_id, previous, exclude_id=product.id):
        product.code = previous

    product.is_deleted = False
    product.deleted_at = None
    db.session.commit()
    return product.to_dict()


def get_product_alerts(product: Product) -> list[dict]:
    """Conditions shown next to a product; enforced alerts block activation."""
    return [
        {
            "condition": product.stock <= 0,
            "title": "Sin stock registrado",
            "description": "El producto no tiene existencias registradas en inventario.",
            "enforce": False,
        },
        {
            "condition": product.cost <= 0,
            "title": "Valor de costo inválido",
            "description": "El costo del producto no es válido o se encuentra sin definir.",
            "enforce": True,
        },
        {
            "condition": product.selling_price <= 0,
            "title": "Precio de venta inválido",
            "description": "El precio de venta del producto no es válido o se encuentra sin definir.",
            "enforce": True,
        },
    ]


def _blocking_alerts(alerts: list[dict]) -> list[dict]:
    return [a for a in alerts if a["condition"] and a["enforce"]]


def get_product_status(product: Product) -> dict:
    alerts = get_product_alerts(product)
    return {
        "is_active": product.is_active,
        "alerts": [a for a in alerts if a["condition"]],
        "can_activate": not _blocking_alerts(alerts),
    }


def _require_live(product: Product) -> None:
    if product.is_deleted:
        raise ConflictError("Deleted products must be restored before they can be edited.")


def _scoped_id(model, business_id: int, entity_id: int) -> int:
    entity = (
        db.session.query(model)
        .filter_by(id=entity_id, business_id=business_id)
        .first()
    )
    if entity is None:
        raise NotFoundError(f"{model.__name__} not found")
    return entity.id


def update_product(*, product_id: int, patch: dict, business_id: int | None = None) -> dict:
    """
    Edit product master data.

    Stock is not editable here; it moves through order lines only. An active
    product whose cost or price becomes invalid is deactivated.

    Raises:
        ConflictError: If the product is deleted or the new code is taken
        NotFoundError: If the category/supplier does not belong to the business
    """
    product = get_product(product_id, business_id)
    _require_live(product)

    if "stock" in patch:
        raise ValidationError("stock cannot be edited directly")

    code = patch.get("code")
    if code is not None and code != product.code:
        if _code_taken(product.business_id, code, exclude_id=product.id):
            raise ConflictError("Product code already exists for this business.")
        product.code = code

    for key in ("name", "cost", "selling_price"):
        if patch.get(key) is not None:
            setattr(product, key, patch[key])
    if patch.get("category_id") is not None:
        product.category_id = _scoped_id(Category, product.business_id, patch["category_id"])
    if patch.get("supplier_id") is not None:
        product.supplier_id = _scoped_id(Supplier, product.business_id, patch["supplier_id"])

    if product.is_active and _blocking_alerts(get_product_alerts(product)):
        product.is_active = False

    db.session.commit()
    return product.to_dict()


def set_product_active(*, product_id: int, active: bool, business_id: int | None = None) -> dict:
    """
    Activate or deactivate a product.

    Activation is refused while an enforced alert (invalid cost or price)
    holds; a product without stock may still be activated.
    """
    product = get_product(product_id, business_id)
    _require_live(product)

    if active:
        blocking = _blocking_alerts(get_product_alerts(product))
        if blocking:
            raise ConflictError(
                "El producto no puede activarse: " + ", ".join(a["title"] for a in blocking)
            )

    product.is_active = bool(active)
    db.session.commit()
    return product.to_dict()
