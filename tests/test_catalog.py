from decimal import Decimal

import pytest

from shopapi.database import db
from shopapi.models import Category
from shopapi.services import catalog, orders
from shopapi.utils.exceptions import ConflictError, InvalidInput, NotFoundError, ProductNotFound


def _category(name):
    with db.transaction() as tx:
        return Category.first(tx, name=name)


def test_default_categories_are_seeded(app):
    with db.transaction() as tx:
        names = [category.name for category in catalog.list_categories(tx)]
    assert "Food" in names
    assert "Beverages" in names


def test_create_product_with_categories(make_supplier):
    supplier = make_supplier(company_name="Bean Co")
    food, drinks = _category("Food"), _category("Beverages")
    with db.transaction() as tx:
        product = catalog.create_product(
            tx, category_ids=[food.id, drinks.id, food.id],
            name="Cold Brew", price="4.5", stock=3, supplier_id=supplier.id,
        )

    with db.transaction() as tx:
        found = catalog.get_product(tx, product.id)
    assert found.price == Decimal("4.50")
    assert found.supplier_name == "Bean Co"
    assert sorted(found.category_ids) == sorted([food.id, drinks.id])
    assert found.average_rating == 0.0
    assert found.review_count == 0


def test_create_product_requires_existing_supplier(app):
    with pytest.raises(NotFoundError):
        with db.transaction() as tx:
            catalog.create_product(tx, name="Orphan", price=1, supplier_id=404)


@pytest.mark.parametrize("values", [
    {"price": -1},
    {"price": "free"},
    {"stock": -2},
    {"stock": 1.5},
    {"name": "  "},
    {"colour": "red"},
])
def test_product_value_checks(make_supplier, values):
    supplier = make_supplier()
    payload = {"name": "Widget", "price": 1, "supplier_id": supplier.id, **values}
    with pytest.raises(InvalidInput):
        with db.transaction() as tx:
            catalog.create_product(tx, **payload)


def test_update_product_replaces_categories(make_product):
    product = make_product()
    food, drinks = _category("Food"), _category("Beverages")
    with db.transaction() as tx:
        catalog.update_product(tx, product.id, category_ids=[food.id])
    with db.transaction() as tx:
        catalog.update_product(tx, product.id, category_ids=[drinks.id], price="7.25", stock=4)
    with db.transaction() as tx:
        found = catalog.get_product(tx, product.id)
    assert found.category_ids == [drinks.id]
    assert found.price == Decimal("7.25")
    assert found.stock == 4


def test_update_missing_product(app):
    with pytest.raises(ProductNotFound):
        with db.transaction() as tx:
            catalog.update_product(tx, 1, price=1)


def test_list_and_search_products(make_product):
    make_product(name="Green Tea", description="Loose leaf")
    make_product(name="Black Coffee")
    hidden = make_product(name="Tea Cakes", active=False)
    drinks = _category("Beverages")
    latte = make_product(name="Latte", category_ids=[drinks.id])

    with db.transaction() as tx:
        assert len(catalog.list_products(tx)) == 4
        active = catalog.list_products(tx, active_only=True)
        tea = catalog.search_products(tx, "tea")
        leaf = catalog.search_products(tx, "leaf")
        by_category = catalog.search_products(tx, "bever")
        listed = catalog.products_by_category(tx, drinks.id)
        counted = catalog.get_category(tx, drinks.id).product_count

    assert hidden.id not in [p.id for p in active]
    assert [p.name for p in tea] == ["Green Tea"]
    assert [p.name for p in leaf] == ["Green Tea"]
    assert [p.id for p in by_category] == [latte.id]
    assert [p.id for p in listed] == [latte.id]
    assert counted == 1


def test_delete_product(make_product):
    product = make_product()
    with db.transaction() as tx:
        catalog.delete_product(tx, product.id)
    with pytest.raises(ProductNotFound):
        with db.transaction() as tx:
            catalog.get_product(tx, product.id)


def test_ordered_product_cannot_be_deleted(make_product, make_customer):
    product = make_product(stock=5)
    customer = make_customer()
    with db.transaction() as tx:
        orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 1}])
    with pytest.raises(ConflictError):
        with db.transaction() as tx:
            catalog.delete_product(tx, product.id)


def test_category_crud(app):
    with db.transaction() as tx:
        category = catalog.create_category(tx, "  Snacks ", "Crunchy")
    assert category.name == "Snacks"

    with db.transaction() as tx:
        catalog.update_category(tx, category.id, description="Salty")
    with db.transaction() as tx:
        assert catalog.get_category(tx, category.id).description == "Salty"

    with db.transaction() as tx:
        catalog.delete_category(tx, category.id)
    with pytest.raises(NotFoundError):
        with db.transaction() as tx:
            catalog.get_category(tx, category.id)


def test_category_name_required(app):
    with pytest.raises(InvalidInput):
        with db.transaction() as tx:
            catalog.create_category(tx, "")


def test_supplier_with_products_cannot_be_deleted(make_supplier, make_product):
    supplier = make_supplier()
    make_product(supplier_id=supplier.id)
    with pytest.raises(ConflictError):
        with db.transaction() as tx:
            catalog.delete_supplier(tx, supplier.id)


def test_supplier_crud(make_supplier):
    supplier = make_supplier(company_name="Old Name", city="Lyon")
    with db.transaction() as tx:
        catalog.update_supplier(tx, supplier.id, company_name="New Name")
    with db.transaction() as tx:
        found = catalog.get_supplier(tx, supplier.id)
        names = [s.company_name for s in catalog.list_suppliers(tx)]
    assert found.company_name == "New Name"
    assert found.city == "Lyon"
    assert names == ["New Name"]

    with db.transaction() as tx:
        catalog.delete_supplier(tx, supplier.id)
    with pytest.raises(NotFoundError):
        with db.transaction() as tx:
            catalog.get_supplier(tx, supplier.id)
