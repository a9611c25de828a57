"""
Category and supplier maintenance; products never lose their classification.
"""

import pytest

from stockledger.models import Category, Product, Supplier
from stockledger.services import catalog_service
from stockledger.services.catalog_service import EssentialEntityError
from stockledger.services.fallback_service import get_default_category, get_default_supplier
from stockledger.validation import ConflictError, NotFoundError, ValidationError


class TestCategories:
    def test_create(self, db_session, business):
        data = catalog_service.create_category(
            business_id=business.id, patch={"code": 7, "description": "Audio"}
        )
        assert data["is_essential"] is False
        assert data["code"] == 7

    def test_duplicate_code(self, db_session, business, category):
        with pytest.raises(ConflictError):
            catalog_service.create_category(
                business_id=business.id, patch={"code": category.code, "description": "Otra"}
            )

    def test_update(self, db_session, category):
        data = catalog_service.update_category(category_id=category.id, patch={"description": "Accesorios"})
        assert data["description"] == "Accesorios"

    def test_essential_cannot_be_modified(self, db_session, business):
        default = get_default_category(business.id)
        db_session.commit()
        with pytest.raises(EssentialEntityError):
            catalog_service.update_category(category_id=default.id, patch={"description": "X"})

    def test_delete_moves_products_to_default(self, db_session, business, category, product):
        moved = catalog_service.delete_category(category_id=category.id)

        assert moved == 1
        default = db_session.query(Category).filter_by(business_id=business.id, is_essential=True).one()
        db_session.expire_all()
        assert db_session.get(Product, product.id).category_id == default.id
        assert db_session.get(Category, category.id) is None

    def test_essential_cannot_be_deleted(self, db_session, business):
        default = get_default_category(business.id)
        db_session.commit()
        with pytest.raises(EssentialEntityError):
            catalog_service.delete_category(category_id=default.id)

    def test_scoped_to_business(self, db_session, other_business, category):
        with pytest.raises(NotFoundError):
            catalog_service.delete_category(category_id=category.id, business_id=other_business.id)


class TestSuppliers:
    def test_fantasy_name_defaults_to_name(self, db_session, business):
        data = catalog_service.create_supplier(
            business_id=business.id, patch={"code": 3, "name": "Importadora Andes"}
        )
        assert data["fantasy_name"] == "Importadora Andes"
        assert data["city"] == "Sin Datos"

    def test_update_code_conflict(self, db_session, business, supplier):
        other = catalog_service.create_supplier(business_id=business.id, patch={"code": 9, "name": "Otro"})
        with pytest.raises(ConflictError):
            catalog_service.update_supplier(supplier_id=other["id"], patch={"code": supplier.code})

    def test_delete_moves_products_to_default(self, db_session, business, supplier, product):
        moved = catalog_service.delete_supplier(supplier_id=supplier.id)

        assert moved == 1
        default = get_default_supplier(business.id)
        db_session.expire_all()
        assert db_session.get(Product, product.id).supplier_id == default.id
        assert db_session.get(Supplier, supplier.id) is None

    def test_essential_cannot_be_deleted(self, db_session, business):
        default = get_default_supplier(business.id)
        db_session.commit()
        with pytest.raises(EssentialEntityError):
            catalog_service.delete_supplier(supplier_id=default.id)


class TestCodes:
    def test_negative_category_code_rejected(self, db_session, business):
        with pytest.raises(ValidationError):
            catalog_service.create_category(
                business_id=business.id, patch={"code": -1, "description": "Audio"}
            )

    def test_negative_supplier_code_rejected_on_update(self, db_session, supplier):
        with pytest.raises(ValidationError):
            catalog_service.update_supplier(supplier_id=supplier.id, patch={"code": -5})

    def test_zero_code_allowed(self, db_session, business):
        data = catalog_service.create_supplier(business_id=business.id, patch={"code": 0, "name": "Cero"})
        assert data["code"] == 0
