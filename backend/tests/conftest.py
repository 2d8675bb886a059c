"""
Pytest fixtures for marketplace backend tests.

Provides test database setup, one user per role, vendor items, and helpers
for tokens, carts and placed orders.
"""

import pytest
from marketplace import create_app
from marketplace.extensions import db
from marketplace.guard import authenticate
from marketplace.models import Item, Role
from marketplace.services import cart_service, order_service, session_service
from marketplace.services.auth_service import create_user


PASSWORD = "Password123!"

ADDRESS = {"city": "Springfield", "street": "742 Evergreen Terrace", "zip": "49007"}
PHONE = "+15551234567"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'NOTIFICATIONS_ASYNC': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def customer(db_session):
    return create_user("Carla Client", "carla@example.com", PASSWORD, Role.CLIENT)


@pytest.fixture(scope='function')
def other_customer(db_session):
    return create_user("Omar Other", "omar@example.com", PASSWORD, Role.CLIENT)


@pytest.fixture(scope='function')
def vendor(db_session):
    return create_user("Vera Vendor", "vera@example.com", PASSWORD, Role.VENDOR)


@pytest.fixture(scope='function')
def other_vendor(db_session):
    return create_user("Victor Vendor", "victor@example.com", PASSWORD, Role.VENDOR)


@pytest.fixture(scope='function')
def admin(db_session):
    return create_user("Ada Admin", "ada@example.com", PASSWORD, Role.ADMIN)


@pytest.fixture(scope='function')
def item(db_session, vendor):
    """Sold by vendor: 5 in stock at 10.00."""
    item = Item(vendor_id=vendor.id, name="Teapot", price_cents=1000, stock=5)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def other_item(db_session, other_vendor):
    """Sold by other_vendor: 3 in stock at 25.00."""
    item = Item(vendor_id=other_vendor.id, name="Kettle", price_cents=2500, stock=3)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture
def token_for(db_session):
    """Issue a fresh bearer token for a user."""
    def _token_for(user):
        _, token = session_service.issue_token(user.id, "pytest")
        return token
    return _token_for


@pytest.fixture
def headers_for(token_for):
    """Authorization headers carrying a fresh token for a user."""
    def _headers_for(user):
        return auth_headers(token_for(user))
    return _headers_for


@pytest.fixture
def identity_for(token_for):
    """Resolve a user into the Identity the guard would hand to a view."""
    def _identity_for(user):
        return authenticate(token_for(user))
    return _identity_for


@pytest.fixture
def place_order(identity_for):
    """Fill the user's cart with (item, quantity) pairs and check out."""
    def _place_order(user, lines, coupon_code=None):
        for item, quantity in lines:
            cart_service.set_cart_quantity(user.id, item.id, quantity)
        return order_service.checkout(
            identity_for(user),
            payment_method="card",
            contact_phone=PHONE,
            address=dict(ADDRESS),
            coupon_code=coupon_code,
        )
    return _place_order


@pytest.fixture
def stock_of(db_session):
    """Current stock of an item, read past the identity map."""
    def _stock_of(item_id: int) -> int:
        db.session.expire_all()
        return db.session.get(Item, item_id).stock
    return _stock_of


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
