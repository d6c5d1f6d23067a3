from decimal import Decimal

import pytest

from shopapi.database import db
from shopapi.services import customers, orders, reviews
from shopapi.utils.exceptions import ConflictError, CustomerNotFound, InvalidInput


def test_create_and_get_customer(make_customer):
    customer = make_customer(first_name="Linus", last_name="T", email="  linus@example.com ")
    assert customer.email == "linus@example.com"
    assert customer.full_name == "Linus T"

    with db.transaction() as tx:
        found = customers.get_customer(tx, customer.id)
    assert found.total_orders == 0
    assert found.total_spent == Decimal("0.00")


def test_duplicate_email(make_customer):
    make_customer(email="dup@example.com")
    with pytest.raises(ConflictError):
        make_customer(email="dup@example.com")


def test_required_fields(app):
    with pytest.raises(InvalidInput):
        with db.transaction() as tx:
            customers.create_customer(tx, first_name="NoEmail")
    with pytest.raises(InvalidInput):
        with db.transaction() as tx:
            customers.create_customer(tx, first_name="", email="x@example.com")


def test_totals_skip_cancelled_orders(make_customer, make_product):
    customer = make_customer()
    product = make_product(price="10.00", stock=10)
    with db.transaction() as tx:
        kept = orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 2}])
        dropped = orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 1}])
    with db.transaction() as tx:
        orders.cancel_order(tx, dropped.id)

    with db.transaction() as tx:
        found = customers.get_customer(tx, customer.id)
    assert found.total_orders == 1
    assert found.total_spent == kept.total_amount == Decimal("22.00")


def test_update_customer(make_customer):
    first = make_customer(email="first@example.com")
    make_customer(email="second@example.com")

    with db.transaction() as tx:
        customers.update_customer(tx, first.id, city="Oslo")
    with db.transaction() as tx:
        assert customers.get_customer(tx, first.id).city == "Oslo"

    with pytest.raises(ConflictError):
        with db.transaction() as tx:
            customers.update_customer(tx, first.id, email="second@example.com")


def test_list_customers_sorted_by_name(make_customer):
    make_customer(first_name="Zed", last_name="Young")
    make_customer(first_name="Amy", last_name="Adams")
    with db.transaction() as tx:
        names = [c.last_name for c in customers.list_customers(tx)]
    assert names == ["Adams", "Young"]


def test_delete_customer(make_customer):
    customer = make_customer()
    with db.transaction() as tx:
        customers.delete_customer(tx, customer.id)
    with pytest.raises(CustomerNotFound):
        with db.transaction() as tx:
            customers.get_customer(tx, customer.id)


def test_customer_with_history_cannot_be_deleted(make_customer, make_product):
    reviewer = make_customer()
    product = make_product()
    with db.transaction() as tx:
        reviews.add_review(tx, product.id, reviewer.id, 4)
    with pytest.raises(ConflictError):
        with db.transaction() as tx:
            customers.delete_customer(tx, reviewer.id)
