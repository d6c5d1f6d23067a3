import pytest

from shopapi.database import Backend, db
from shopapi.database.migrations import _map_type
from shopapi.database.schema import schema
from shopapi.models import Category, Product
from shopapi.utils.exceptions import ConflictError, InvalidInput, TransactionFailure


def test_sqlite_backend_and_tables(app):
    assert db.backend == Backend.SQLITE
    for table in schema:
        columns = db.get_columns(table["table_name"])
        expected = [name for name in table["table_columns"] if name.upper() not in ("FOREIGN KEY", "UNIQUE")]
        assert set(expected) <= set(columns)


def test_schema_sync_is_repeatable(app):
    db.checkDB(schema)
    db.checkDB(schema)
    with db.transaction() as tx:
        assert Category.count(tx, "name = ?", ("Food",)) == 1


def test_commit_on_clean_exit(app):
    with db.transaction() as tx:
        Category.new(tx, name="Kept")
    with db.transaction() as tx:
        assert Category.first(tx, name="Kept") is not None


def test_shop_errors_roll_back_unchanged(app):
    with pytest.raises(InvalidInput):
        with db.transaction() as tx:
            Category.new(tx, name="Discarded")
            raise InvalidInput("nope")
    with db.transaction() as tx:
        assert Category.first(tx, name="Discarded") is None


def test_unexpected_errors_are_wrapped(app):
    with pytest.raises(TransactionFailure) as exc:
        with db.transaction() as tx:
            Category.new(tx, name="Discarded")
            raise KeyError("boom")
    assert isinstance(exc.value.cause, KeyError)
    assert isinstance(exc.value.__cause__, KeyError)
    assert "KeyError" in exc.value.payload["cause"]
    with db.transaction() as tx:
        assert Category.first(tx, name="Discarded") is None


def test_unique_violation_becomes_conflict(make_customer):
    customer = make_customer(email="taken@example.com")
    with pytest.raises(ConflictError):
        with db.transaction() as tx:
            tx.insert("customer_table", {"first_name": "Copy", "email": customer.email})


def test_foreign_keys_are_enforced(app):
    with pytest.raises(TransactionFailure):
        with db.transaction() as tx:
            tx.insert("product_table", {"name": "Ghost", "supplier_id": 12345, "price": 1, "stock": 1})


def test_check_constraints_are_enforced(make_product):
    product = make_product(stock=1)
    with pytest.raises(TransactionFailure):
        with db.transaction() as tx:
            tx.execute("UPDATE product_table SET stock = -1 WHERE id = ?", (product.id,), fetch="none")
    with db.transaction() as tx:
        assert Product.find(tx, product.id).stock == 1


def test_run_in_transaction(app):
    created = db.run_in_transaction(lambda tx, name: Category.new(tx, name=name), "Frozen")
    assert created.name == "Frozen"


def test_unknown_columns_rejected(app):
    with pytest.raises(TransactionFailure):
        with db.transaction() as tx:
            Category.new(tx, name="Bad", colour="blue")


@pytest.mark.parametrize("col_type, backend, expected", [
    ("DECIMAL NOT NULL", "postgres", "NUMERIC(18,2) NOT NULL"),
    ("TEXT UNIQUE NOT NULL", "mysql", "VARCHAR(255) UNIQUE NOT NULL"),
    ("BOOL DEFAULT 1", "postgres", "BOOLEAN DEFAULT TRUE"),
    ("INTEGER PRIMARY KEY AUTOINCREMENT", "postgres", "SERIAL PRIMARY KEY"),
    ("INTEGER CHECK (stock >= 0)", "sqlite", "INTEGER CHECK (stock >= 0)"),
])
def test_map_type(col_type, backend, expected):
    assert _map_type(col_type, backend) == expected
