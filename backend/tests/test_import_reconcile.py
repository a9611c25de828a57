"""
Import row classification (pure, no database).
"""

from stockledger.services.import_service import (
    CODE_DUPLICATED_MESSAGE,
    CODE_INVALID_MESSAGE,
    CODE_REGISTERED_MESSAGE,
    DEFAULTS_APPLIED_MESSAGE,
    NAME_INVALID_MESSAGE,
    reconcile_rows,
)
from stockledger.services.import_template import ParsedProductRow

CATEGORIES = {1: 11, 3: 13}
SUPPLIERS = {2: 22}
FALLBACK_CATEGORY = 100
FALLBACK_SUPPLIER = 200


def _row(code="5", name="Mouse", cost="1000", selling_price="1500", stock="10",
         category_code="1", supplier_code="2", row_number=2):
    return ParsedProductRow(
        row_number=row_number,
        code=code,
        name=name,
        cost=cost,
        selling_price=selling_price,
        stock=stock,
        category_code=category_code,
        supplier_code=supplier_code,
    )


def _reconcile(rows, existing_codes=()):
    return reconcile_rows(
        rows,
        categories=CATEGORIES,
        suppliers=SUPPLIERS,
        fallback_category_id=FALLBACK_CATEGORY,
        fallback_supplier_id=FALLBACK_SUPPLIER,
        existing_codes=set(existing_codes),
    )


class TestClassification:
    def test_clean_row_is_success(self):
        result = _reconcile([_row()])

        assert len(result.successes) == 1
        assert result.errors == [] and result.warnings == []
        created = result.to_create[0]
        assert created["category_id"] == 11
        assert created["supplier_id"] == 22
        assert created["cost"] == 1000
        assert created["is_active"] is True

    def test_invalid_category_falls_back_with_warning(self):
        result = _reconcile([_row(category_code="bad")])

        assert len(result.to_create) == 1
        assert result.to_create[0]["category_id"] == FALLBACK_CATEGORY
        assert result.to_create[0]["supplier_id"] == 22
        assert [w.message for w in result.warnings] == [DEFAULTS_APPLIED_MESSAGE]
        assert result.successes == []

    def test_unknown_supplier_code_falls_back(self):
        result = _reconcile([_row(supplier_code=99)])

        assert result.to_create[0]["supplier_id"] == FALLBACK_SUPPLIER
        assert len(result.warnings) == 1

    def test_numeric_cell_codes(self):
        result = _reconcile([_row(category_code=3.0, supplier_code=2)])

        assert result.to_create[0]["category_id"] == 13
        assert len(result.successes) == 1

    def test_existing_code_is_error(self):
        result = _reconcile([_row()], existing_codes={"5"})

        assert result.to_create == []
        assert result.errors[0].message == CODE_REGISTERED_MESSAGE

    def test_duplicate_in_batch_keeps_first(self):
        result = _reconcile([_row(row_number=2), _row(name="Otro", row_number=3)])

        assert len(result.to_create) == 1
        assert result.to_create[0]["name"] == "Mouse"
        assert result.errors[0].message == CODE_DUPLICATED_MESSAGE
        assert result.errors[0].row.row_number == 3

    def test_empty_name_is_error(self):
        result = _reconcile([_row(name="   ")])

        assert result.to_create == []
        assert result.errors[0].message == NAME_INVALID_MESSAGE

    def test_rejected_row_does_not_reserve_code(self):
        result = _reconcile([_row(name=None, row_number=2), _row(row_number=3)])

        assert len(result.errors) == 1
        assert len(result.to_create) == 1

    def test_too_long_code_is_error(self):
        result = _reconcile([_row(code="X" * 65)])

        assert result.errors[0].message == CODE_INVALID_MESSAGE


class TestNumbers:
    def test_invalid_numbers_default_to_zero(self):
        result = _reconcile([_row(cost="abc", selling_price=-5, stock="1.5")])

        created = result.to_create[0]
        assert (created["cost"], created["selling_price"], created["stock"]) == (0, 0, 0)
        assert created["is_active"] is False
        assert len(result.warnings) == 1

    def test_currency_symbol_and_rounding(self):
        result = _reconcile([_row(cost="$1000", selling_price=1499.5)])

        created = result.to_create[0]
        assert created["cost"] == 1000
        assert created["selling_price"] == 1500
        assert len(result.successes) == 1

    def test_zero_stock_is_valid_but_inactive(self):
        result = _reconcile([_row(stock=0)])

        assert result.to_create[0]["is_active"] is False
        assert len(result.successes) == 1

    def test_non_finite_rejected(self):
        result = _reconcile([_row(cost="inf")])

        assert result.to_create[0]["cost"] == 0
        assert len(result.warnings) == 1

    def test_out_of_range_numbers_default_to_zero(self):
        result = _reconcile([_row(cost="1e20", selling_price=10**12, stock="1e20")])

        created = result.to_create[0]
        assert (created["cost"], created["selling_price"], created["stock"]) == (0, 0, 0)
        assert [w.message for w in result.warnings] == [DEFAULTS_APPLIED_MESSAGE]

    def test_upper_bound_is_inclusive(self):
        result = _reconcile([_row(cost=999_999_999, selling_price=999_999_999, stock=999_999_999)])

        created = result.to_create[0]
        assert created["cost"] == 999_999_999
        assert created["stock"] == 999_999_999
        assert len(result.successes) == 1
