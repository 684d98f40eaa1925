"""
Pytest fixtures for the GST ledger backend tests.

Provides test database setup, two-business isolation fixtures, and test client.
"""

import pytest
from app import create_app
from app.extensions import db
from app.models import Business, Contact, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'GST_COMPUTE_SERVER_SIDE': False,
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


def business_headers(business, **extra):
    """Request headers carrying the business context."""
    headers = {"X-Business-Id": str(business.id)}
    headers.update(extra)
    return headers


@pytest.fixture(scope='function')
def business_a(db_session):
    """Create Business A (first tenant)."""
    business = Business(name="Sharma General Stores", code="SHARMA", gstin="27ABCDE1234F1Z5", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_b(db_session):
    """Create Business B (second tenant)."""
    business = Business(name="Patel Traders", code="PATEL", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


def make_product(db_session, business, name="Basmati Rice 5kg", stock=10, price=100.0, **kwargs):
    product = Product(
        business_id=business.id,
        name=name,
        category=kwargs.pop("category", "Groceries"),
        price=price,
        stock=stock,
        min_stock_level=kwargs.pop("min_stock_level", 2),
        hsn=kwargs.pop("hsn", "1006"),
        cgst=kwargs.pop("cgst", 2.5),
        sgst=kwargs.pop("sgst", 2.5),
        **kwargs,
    )
    db_session.add(product)
    db_session.commit()
    return product


def make_contact(db_session, business, contact_type, name, phone="9876543210", **kwargs):
    contact = Contact(
        business_id=business.id,
        type=contact_type,
        name=name,
        phone=phone,
        current_balance=kwargs.pop("current_balance", 0),
        **kwargs,
    )
    db_session.add(contact)
    db_session.commit()
    return contact


@pytest.fixture(scope='function')
def product(db_session, business_a):
    """Product in Business A with 10 units at 100.00."""
    return make_product(db_session, business_a)


@pytest.fixture(scope='function')
def second_product(db_session, business_a):
    return make_product(db_session, business_a, name="Sunflower Oil 1L", stock=3, price=180.0, hsn="1512")


@pytest.fixture(scope='function')
def customer(db_session, business_a):
    return make_contact(db_session, business_a, "customer", "Asha Traders", city="Pune", state="Maharashtra")


@pytest.fixture(scope='function')
def vendor(db_session, business_a):
    return make_contact(db_session, business_a, "vendor", "Metro Wholesale", phone="9123456780")
