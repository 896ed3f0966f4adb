"""
Pytest fixtures for shopledger backend tests.

Provides an in-memory database, shop/supplier/principal factories, seeded
stock helpers and gateway headers for the test client.
"""

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Shop, Supplier
from shopledger.services import purchase_service, stock_ledger
from shopledger.services.policy import Principal


ADMIN_USER_ID = 1


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RETRY_BACKOFF_BASE': 0,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def make_shop(db_session):
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        shop = Shop(name=name or f"Shop {counter['n']}", code=f"S{counter['n']}", is_active=True)
        db_session.add(shop)
        db_session.commit()
        return shop

    return _make


@pytest.fixture
def shop_a(make_shop):
    return make_shop("Downtown")


@pytest.fixture
def shop_b(make_shop):
    return make_shop("Westlands")


@pytest.fixture
def supplier(db_session):
    s = Supplier(name="Parts Hub", phone="0700000000", is_active=True)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture
def admin():
    return Principal(user_id=ADMIN_USER_ID, name="Admin", roles=frozenset({"admin"}))


@pytest.fixture
def make_staff():
    """Staff principal attached to a shop; technician unless told otherwise."""
    counter = {"n": 100}

    def _make(shop, role="technician"):
        counter["n"] += 1
        return Principal(
            user_id=counter["n"],
            name=f"{role} {counter['n']}",
            shop_id=shop.id if shop is not None else None,
            roles=frozenset({role}),
        )

    return _make


@pytest.fixture
def tech_a(make_staff, shop_a):
    return make_staff(shop_a)


@pytest.fixture
def tech_b(make_staff, shop_b):
    return make_staff(shop_b)


@pytest.fixture
def manager_a(make_staff, shop_a):
    return make_staff(shop_a, role="manager")


@pytest.fixture
def stock_shop_item(admin, supplier):
    """Purchase straight into a shop and return that shop row."""

    def _stock(shop, name, quantity, price_cents=1000, cost_price_cents=600):
        purchase_service.record_purchase(
            {
                "supplier_id": supplier.id,
                "shop_id": shop.id,
                "lines": [{
                    "name": name,
                    "quantity": quantity,
                    "cost_price_cents": cost_price_cents,
                    "price_cents": price_cents,
                }],
            },
            admin,
        )
        return stock_ledger.find_item(name, shop.id)

    return _stock


@pytest.fixture
def stock_pool_item(admin, supplier):
    """Purchase into the pool and return the pool row."""

    def _stock(name, quantity, cost_price_cents=600):
        purchase_service.record_purchase(
            {
                "supplier_id": supplier.id,
                "lines": [{"name": name, "quantity": quantity, "cost_price_cents": cost_price_cents}],
            },
            admin,
        )
        return stock_ledger.find_item(name, None)

    return _stock


def principal_headers(principal: Principal) -> dict:
    """Gateway headers for a principal."""
    headers = {
        'X-User-Id': str(principal.user_id),
        'X-User-Name': principal.name,
        'X-User-Roles': ','.join(sorted(principal.roles)),
    }
    if principal.shop_id is not None:
        headers['X-Shop-Id'] = str(principal.shop_id)
    return headers


@pytest.fixture
def headers_for():
    return principal_headers
