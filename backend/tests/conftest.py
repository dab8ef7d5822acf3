"""
Pytest fixtures for RestoPOS backend tests.

Provides an app on a temporary SQLite file (threads need a real file to share),
a per-test table wipe, seeded staff and menu, and bearer-token helpers.
"""

from decimal import Decimal

import pytest

from restopos import create_app
from restopos.extensions import db
from restopos.models import Category, MenuItem
from restopos.services import auth_service

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "restopos-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'SQLITE_BUSY_TIMEOUT': 30,
        'LOG_LEVEL': 'WARNING',
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
def owner(db_session):
    return auth_service.create_user(db_session, "owner", PASSWORD, role="owner", full_name="Olivia Owner")


@pytest.fixture(scope='function')
def supervisor(db_session):
    return auth_service.create_user(db_session, "super", PASSWORD, role="supervisor", full_name="Sam Supervisor")


@pytest.fixture(scope='function')
def cashier(db_session):
    return auth_service.create_user(db_session, "cashier", PASSWORD, role="cashier", full_name="Casey Cashier")


@pytest.fixture(scope='function')
def cashier_b(db_session):
    return auth_service.create_user(db_session, "cashier_b", PASSWORD, role="cashier", full_name="Blake Cashier")


@pytest.fixture(scope='function')
def menu(db_session):
    """Two items: espresso at 5.00 and muffin at 3.50."""
    coffee = Category(category_name="Coffee", description="Hot drinks")
    food = Category(category_name="Food")
    db_session.add_all([coffee, food])
    db_session.flush()

    espresso = MenuItem(category_id=coffee.id, item_name="Espresso", price=Decimal("5.00"), is_available=True)
    muffin = MenuItem(category_id=food.id, item_name="Blueberry Muffin", price=Decimal("3.50"), is_available=True)
    db_session.add_all([espresso, muffin])
    db_session.commit()
    return {"espresso": espresso.id, "muffin": muffin.id}


@pytest.fixture(scope='function')
def scenario_items(menu):
    """2 x 5.00 + 1 x 3.50 = 13.50"""
    return [
        {"item_id": menu["espresso"], "quantity": 2, "unit_price": "5.00"},
        {"item_id": menu["muffin"], "quantity": 1, "unit_price": "3.50"},
    ]


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
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


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, "owner"))


@pytest.fixture(scope='function')
def supervisor_headers(client, supervisor):
    return auth_headers(get_auth_token(client, "super"))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, "cashier"))
