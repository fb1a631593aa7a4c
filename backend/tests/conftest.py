"""
Pytest fixtures for stockroom backend tests.

Provides test database setup, user accounts with auth headers, and
ledger helpers shared by the pure (no database) suites.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from stockroom import create_app
from stockroom.extensions import db
from stockroom.ledger import Actor, ProductRecord
from stockroom.repositories import InMemoryRepository
from stockroom.services import auth_service

ADMIN_PASSWORD = "Password123!"
USER_PASSWORD = "Cashier123!"

NOW = datetime(2026, 10, 19, 12, 0, 0)
ACTOR = Actor(id=1, name="Alice Admin")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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
def admin_user(db_session):
    return auth_service.create_user(
        username="admin",
        name="Alice Admin",
        password=ADMIN_PASSWORD,
        role="admin",
    )


@pytest.fixture(scope='function')
def regular_user(db_session):
    return auth_service.create_user(
        username="cashier",
        name="Bob Cashier",
        password=USER_PASSWORD,
        role="user",
    )


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin", ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def user_headers(client, regular_user):
    return auth_headers(get_auth_token(client, "cashier", USER_PASSWORD))


@pytest.fixture(scope='function')
def memory_repo():
    return InMemoryRepository()


def make_product(quantity=10, backup_quantity=5, **overrides) -> ProductRecord:
    """An already-stored product record for pure ledger tests."""
    fields = dict(
        id=1,
        name="Widget",
        brand="Acme",
        price=Decimal("9.99"),
        quantity=quantity,
        backup_quantity=backup_quantity,
        version=1,
    )
    fields.update(overrides)
    return ProductRecord(**fields)


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
