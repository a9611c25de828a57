"""
Pytest fixtures for stockledger backend tests.

Provides test database setup, business/catalog/product fixtures, and test client.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Business, Category, Supplier, Product, ProductAnalytics


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'IMPORT_MAX_ROWS': 50,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def business(db_session):
    """Create the main tenant."""
    business = Business(name="Ferretería Central", email="contacto@central.cl")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def other_business(db_session):
    """Create a second tenant."""
    business = Business(name="Bazar Norte")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def category(db_session, business):
    category = Category(business_id=business.id, code=1, description="Periféricos")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def supplier(db_session, business):
    supplier = Supplier(
        business_id=business.id, code=2, name="Distribuidora Sur", fantasy_name="DistriSur"
    )
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def make_product(db_session, business, category, supplier):
    """Factory for products with an analytics row."""
    def _make(code="P-1", stock=10, cost=100, selling_price=150, with_analytics=True, **kwargs):
        product = Product(
            business_id=business.id,
            code=code,
            name=kwargs.pop("name", f"Producto {code}"),
            cost=cost,
            selling_price=selling_price,
            stock=stock,
            is_active=True,
            category_id=category.id,
            supplier_id=supplier.id,
            **kwargs,
        )
        db_session.add(product)
        db_session.flush()
        if with_analytics:
            db_session.add(ProductAnalytics(product_id=product.id, business_id=business.id))
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """stock=10, cost=100, selling_price=150."""
    return make_product()
