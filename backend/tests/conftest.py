"""
Pytest fixtures for shopledger backend tests.

Provides an in-memory application, per-test table wipe, operator accounts
with bearer-token headers, and product factories.
"""

import bcrypt
import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Product, User
from shopledger.services import session_service


TEST_PASSWORD = "counter123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SCOPE_TO_OPERATOR': True,
        'SCOPE_ANALYTICS_TO_OPERATOR': False,
        'REPORT_UTC_OFFSET_HOURS': 8,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh tables for each test."""
    with app.app_context():
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


def _make_user(username: str) -> User:
    # Low bcrypt cost keeps the suite fast; verify_password accepts any cost
    password_hash = bcrypt.hashpw(TEST_PASSWORD.encode('utf-8'), bcrypt.gensalt(rounds=4)).decode('utf-8')
    user = User(username=username, password_hash=password_hash, is_active=True)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def operator(db_session):
    """Primary cashier account."""
    return _make_user("alice")


@pytest.fixture(scope='function')
def other_operator(db_session):
    """Second cashier account, used for scoping checks."""
    return _make_user("bob")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers(operator):
    _, token = session_service.create_session(operator.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(other_operator):
    _, token = session_service.create_session(other_operator.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product("Tea", 5, owner="alice", category="beverage")."""
    def _make(name: str, quantity: int, owner: str = "alice", **fields) -> Product:
        product = Product(name=name, quantity=quantity, created_by=owner, **fields)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def reload(model, pk):
    """Fetch a fresh copy of a row, bypassing the identity map."""
    db.session.expire_all()
    return db.session.get(model, pk)


def cart_item(product: Product, quantity: int, price) -> dict:
    return {
        "product_id": product.id,
        "product_name": product.name,
        "quantity": quantity,
        "price": price,
    }
