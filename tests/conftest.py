from decimal import Decimal

import pytest

from shopapi import create_app
from shopapi.database import db
from shopapi.services import auth, catalog, customers


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", {"DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}"})
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def tx(app):
    """A transaction that commits when the test body finishes cleanly."""
    with db.transaction() as tx:
        yield tx


@pytest.fixture
def make_supplier(app):
    def _make(**values):
        values.setdefault("company_name", "Acme Foods")
        with db.transaction() as tx:
            return catalog.create_supplier(tx, **values)
    return _make


@pytest.fixture
def make_product(app, make_supplier):
    def _make(**values):
        if "supplier_id" not in values:
            values["supplier_id"] = make_supplier().id
        values.setdefault("name", "Espresso Beans")
        values.setdefault("price", Decimal("50.00"))
        values.setdefault("stock", 10)
        with db.transaction() as tx:
            return catalog.create_product(tx, **values)
    return _make


@pytest.fixture
def make_customer(app):
    counter = iter(range(1, 10_000))

    def _make(**values):
        n = next(counter)
        values.setdefault("first_name", "Ada")
        values.setdefault("last_name", f"Lovelace{n}")
        values.setdefault("email", f"customer{n}@example.com")
        with db.transaction() as tx:
            return customers.create_customer(tx, **values)
    return _make


@pytest.fixture
def registered(app):
    with db.transaction() as tx:
        return auth.register(tx, "alice", "alice@example.com", "s3cret!", "Alice", "Smith")


@pytest.fixture
def auth_headers(registered):
    return {"Authorization": f"Bearer {registered.access_token}"}
