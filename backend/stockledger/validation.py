# Overview: Request payload checks shared by the inventory and catalog routes.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text


# Upper bound for cost and selling price, in whole currency units
MAX_AMOUNT = 999_999_999

# Upper bound for units on hand of a single product
MAX_STOCK = 999_999_999

# Product codes are user-facing; the column is wider to fit removal tags.
MAX_PRODUCT_CODE_LENGTH = 64


class ValidationError(ValueError):
    """Malformed input; answered with 400."""


class ConflictError(ValueError):
    """Input collides with stored data (duplicate code, protected row); answered with 409."""


class NotFoundError(ValueError):
    """Referenced business, product, order or catalog row does not exist; answered with 404."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which model columns a client may send.

    writable_fields is an allowlist; anything else in the payload is refused.
    required_on_create only applies to full (non-partial) payloads.
    """
    writable_fields: frozenset[str] | set[str]
    required_on_create: frozenset[str] | set[str] = field(default_factory=frozenset)


def _parse_integer(key: str, value: Any) -> int:
    # bool is an int subclass but never a valid quantity, code or amount
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if not digits.isdigit():
            raise ValidationError(f"{key} must be a whole number")
        return int(text)
    raise ValidationError(f"{key} must be a whole number")


def _normalize(column, value: Any) -> Any:
    column_type = column.type
    if isinstance(column_type, Integer):
        return _parse_integer(column.key, value)
    if isinstance(column_type, Boolean):
        return value if isinstance(value, bool) else bool(value)
    if isinstance(column_type, (String, Text)):
        text = str(value).strip()
        if not text and not column.nullable:
            raise ValidationError(f"{column.key} cannot be blank")
        length = getattr(column_type, "length", None)
        if length and len(text) > length:
            raise ValidationError(f"{column.key} exceeds max length {length}")
        return text
    return value


def validate_payload(*, model, payload: Any, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Turn a JSON body into a patch of model column values.

    Column metadata decides types, nullability and string length; the policy
    decides which keys are accepted at all.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(set(policy.required_on_create) - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}
    for key, value in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns[key]
        if value is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _normalize(column, value)
    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules that column metadata cannot express."""
    for key in ("cost", "selling_price"):
        amount = patch.get(key)
        if amount is not None and not 0 <= amount <= MAX_AMOUNT:
            raise ValidationError(f"{key} must be between 0 and {MAX_AMOUNT}")

    stock = patch.get("stock")
    if stock is not None and not 0 <= stock <= MAX_STOCK:
        raise ValidationError(f"stock must be between 0 and {MAX_STOCK}")

    code = patch.get("code")
    if code is not None and len(code) > MAX_PRODUCT_CODE_LENGTH:
        raise ValidationError(f"code exceeds max length {MAX_PRODUCT_CODE_LENGTH}")


def enforce_rules_order_line(payload: dict) -> None:
    quantity = payload.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    for key in ("total_price", "total_discount"):
        value = payload.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{key} must be an integer")
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")


def enforce_rules_catalog(patch: dict) -> None:
    """Category and supplier codes are what import templates reference."""
    code = patch.get("code")
    if code is None:
        return
    if isinstance(code, bool) or not isinstance(code, int):
        raise ValidationError("code must be an integer")
    if not 0 <= code <= MAX_AMOUNT:
        raise ValidationError(f"code must be between 0 and {MAX_AMOUNT}")
