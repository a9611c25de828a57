# Overview: Service-layer operations for spreadsheet product imports; encapsulates business logic and database work.

"""
Product import

Two phases:
- reconcile_rows() is pure: it classifies parsed rows against preloaded
  lookups (business categories/suppliers, fallback ids, existing codes) and
  never touches the database.
- import_products() loads those lookups, runs the reconciliation and then
  creates every accepted row with one bulk insert of products and one bulk
  insert of analytics rows, committed together. If that transaction fails
  nothing from the file persists.

Row outcomes:
- error: code already registered, code repeated in the file, empty code or
  empty name. The row is not created.
- warning: created, but some fields were replaced by defaults (fallback
  category/supplier, zero for invalid or out-of-range numbers).
- success: created as written.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterable, Mapping

from flask import current_app
from sqlalchemy import insert

from ..extensions import db
from ..models import Business, Category, Product, ProductAnalytics, Supplier
from ..validation import MAX_AMOUNT, MAX_PRODUCT_CODE_LENGTH, MAX_STOCK, NotFoundError
from .fallback_service import get_default_category, get_default_supplier
from .import_template import ParsedProductRow, parse_inventory_template
from .products_service import compute_is_active

CODE_REGISTERED_MESSAGE = "Código se encuentra registrado en inventario."
CODE_DUPLICATED_MESSAGE = "Código se encuentra duplicado en plantilla."
CODE_INVALID_MESSAGE = "Código inválido."
NAME_INVALID_MESSAGE = "Nombre inválido."
DEFAULTS_APPLIED_MESSAGE = "Se aplicaron valores predeterminados a campos con datos inválidos."


class InventoryImportError(Exception):
    """Raised when the bulk-create transaction of an import fails."""


@dataclass(frozen=True)
class RowIssue:
    row: ParsedProductRow
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row.to_dict(), "message": self.message}


@dataclass
class ReconcileResult:
    to_create: list[dict] = field(default_factory=list)
    errors: list[RowIssue] = field(default_factory=list)
    warnings: list[RowIssue] = field(default_factory=list)
    successes: list[ParsedProductRow] = field(default_factory=list)


def _to_number(value: Any) -> float | None:
    """Parse a cell as a finite non-negative number; None when invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace("$", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _to_amount(value: Any) -> int | None:
    number = _to_number(value)
    if number is None:
        return None
    # Whole currency units, half-up
    amount = int(math.floor(number + 0.5))
    return amount if amount <= MAX_AMOUNT else None


def _to_whole(value: Any, limit: int | None = None) -> int | None:
    number = _to_number(value)
    if number is None or not number.is_integer():
        return None
    if limit is not None and number > limit:
        return None
    return int(number)


def _to_name(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _resolve_code(value: Any, known: Mapping[int, int], fallback_id: int) -> tuple[int, bool]:
    code = _to_whole(value)
    if code is not None and code in known:
        return known[code], True
    return fallback_id, False


def reconcile_rows(
    rows: Iterable[ParsedProductRow],
    *,
    categories: Mapping[int, int],
    suppliers: Mapping[int, int],
    fallback_category_id: int,
    fallback_supplier_id: int,
    existing_codes: set[str],
) -> ReconcileResult:
    """
    Classify parsed rows. Pure: no I/O.

    Args:
        categories: business category code -> category id
        suppliers: business supplier code -> supplier id
        existing_codes: product codes already registered for the business
    """
    result = ReconcileResult()
    batch_codes: set[str] = set()

    for row in rows:
        code = (row.code or "").strip()
        if not code or len(code) > MAX_PRODUCT_CODE_LENGTH:
            result.errors.append(RowIssue(row, CODE_INVALID_MESSAGE))
            continue
        if code in existing_codes:
            result.errors.append(RowIssue(row, CODE_REGISTERED_MESSAGE))
            continue
        if code in batch_codes:
            result.errors.append(RowIssue(row, CODE_DUPLICATED_MESSAGE))
            continue

        name = _to_name(row.name)
        if name is None:
            result.errors.append(RowIssue(row, NAME_INVALID_MESSAGE))
            continue

        defaults_applied = False

        category_id, ok = _resolve_code(row.category_code, categories, fallback_category_id)
        defaults_applied |= not ok
        supplier_id, ok = _resolve_code(row.supplier_code, suppliers, fallback_supplier_id)
        defaults_applied |= not ok

        stock = _to_whole(row.stock, MAX_STOCK)
        cost = _to_amount(row.cost)
        selling_price = _to_amount(row.selling_price)
        if stock is None or cost is None or selling_price is None:
            defaults_applied = True
        stock = stock or 0
        cost = cost or 0
        selling_price = selling_price or 0

        batch_codes.add(code)
        result.to_create.append(
            {
                "code": code,
                "name": name,
                "cost": cost,
                "selling_price": selling_price,
                "stock": stock,
                "category_id": category_id,
                "supplier_id": supplier_id,
                "is_active": compute_is_active(cost, selling_price, stock),
            }
        )
        if defaults_applied:
            result.warnings.append(RowIssue(row, DEFAULTS_APPLIED_MESSAGE))
        else:
            result.successes.append(row)

    return result


def _bulk_create(business_id: int, to_create: list[dict]) -> int:
    db.session.execute(
        insert(Product),
        [{**p, "business_id": business_id, "is_deleted": False} for p in to_create],
    )
    codes = [p["code"] for p in to_create]
    product_ids = [
        pid
        for (pid,) in db.session.query(Product.id).filter(
            Product.business_id == business_id, Product.code.in_(codes)
        )
    ]
    db.session.execute(
        insert(ProductAnalytics),
        [{"product_id": pid, "business_id": business_id} for pid in product_ids],
    )
    return len(product_ids)


def import_products(stream: BinaryIO, business_id: int) -> dict:
    """
    Import products from an uploaded template.

    Returns:
        Dict with 'created' count and per-row 'errors', 'warnings', 'successes'

    Raises:
        TemplateError: If the workbook is not a valid template
        NotFoundError: If the business does not exist
        InventoryImportError: If the bulk-create transaction fails (nothing persisted)
    """
    if db.session.get(Business, business_id) is None:
        raise NotFoundError(f"Business {business_id} not found")

    rows = parse_inventory_template(stream, max_rows=current_app.config.get("IMPORT_MAX_ROWS"))

    categories = {
        code: cid
        for code, cid in db.session.query(Category.code, Category.id).filter_by(business_id=business_id)
    }
    suppliers = {
        code: sid
        for code, sid in db.session.query(Supplier.code, Supplier.id).filter_by(business_id=business_id)
    }
    fallback_category = get_default_category(business_id)
    fallback_supplier = get_default_supplier(business_id)

    codes = list({r.code for r in rows})
    existing_codes = set()
    if codes:
        existing_codes = {
            code
            for (code,) in db.session.query(Product.code).filter(
                Product.business_id == business_id, Product.code.in_(codes)
            )
        }

    result = reconcile_rows(
        rows,
        categories=categories,
        suppliers=suppliers,
        fallback_category_id=fallback_category.id,
        fallback_supplier_id=fallback_supplier.id,
        existing_codes=existing_codes,
    )

    try:
        created = _bulk_create(business_id, result.to_create) if result.to_create else 0
        db.session.commit()
    except Exception as exc:
        # Drop whatever part of the bulk insert already ran
        db.session.rollback()
        raise InventoryImportError("No se pudieron crear los productos importados.") from exc

    return {
        "created": created,
        "errors": [issue.to_dict() for issue in result.errors],
        "warnings": [issue.to_dict() for issue in result.warnings],
        "successes": [row.to_dict() for row in result.successes],
    }
