"""
Essential category/supplier resolution.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from stockledger.models import Category, Supplier
from stockledger.services.fallback_service import (
    DEFAULT_CATEGORY_COLOR,
    get_default_category,
    get_default_supplier,
)
from stockledger.validation import NotFoundError


class TestDefaultCategory:
    def test_created_on_first_use(self, db_session, business):
        category = get_default_category(business.id)
        db_session.commit()

        assert category.is_essential is True
        assert category.description == "General"
        assert category.color_code == DEFAULT_CATEGORY_COLOR
        assert category.code == 0

    def test_idempotent(self, db_session, business):
        first = get_default_category(business.id)
        db_session.commit()
        second = get_default_category(business.id)

        assert first.id == second.id
        assert db_session.query(Category).filter_by(business_id=business.id, is_essential=True).count() == 1

    def test_one_per_business(self, db_session, business, other_business):
        mine = get_default_category(business.id)
        theirs = get_default_category(other_business.id)
        db_session.commit()

        assert mine.id != theirs.id
        assert theirs.business_id == other_business.id

    def test_code_zero_taken_uses_next_free(self, db_session, business):
        db_session.add(Category(business_id=business.id, code=0, description="Legacy"))
        db_session.add(Category(business_id=business.id, code=4, description="Tools"))
        db_session.commit()

        category = get_default_category(business.id)
        db_session.commit()

        assert category.code == 5

    def test_unknown_business(self, db_session):
        with pytest.raises(NotFoundError):
            get_default_category(123456)

    def test_second_essential_row_rejected_by_index(self, db_session, business):
        get_default_category(business.id)
        db_session.commit()

        db_session.add(Category(business_id=business.id, code=9, description="Otra", is_essential=True))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestDefaultSupplier:
    def test_takes_business_contact_data(self, db_session, business):
        supplier = get_default_supplier(business.id)
        db_session.commit()

        assert supplier.is_essential is True
        assert supplier.fantasy_name == "Proveedor Propio"
        assert supplier.name == business.name
        assert supplier.email == business.email
        assert supplier.rut == "Sin Datos"

    def test_missing_business_data_defaults(self, db_session, other_business):
        supplier = get_default_supplier(other_business.id)
        db_session.commit()

        assert supplier.email == "Sin Datos"

    def test_idempotent(self, db_session, business):
        first = get_default_supplier(business.id)
        second = get_default_supplier(business.id)
        db_session.commit()

        assert first.id == second.id
        assert db_session.query(Supplier).filter_by(business_id=business.id, is_essential=True).count() == 1
