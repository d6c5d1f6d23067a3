"""
Products, categories and suppliers.
"""
from typing import Any, Dict, List, Optional, Sequence

from shopapi.database import Transaction
from shopapi.models import Category, Product, Supplier
from shopapi.services import reviews
from shopapi.utils.exceptions import ConflictError, InvalidInput, NotFoundError, ProductNotFound
from shopapi.utils.helpers import to_money
from shopapi.utils.logging import get_logger

log = get_logger(__name__)

PRODUCT_FIELDS = ("name", "description", "price", "stock", "image_url", "active", "supplier_id")
CATEGORY_FIELDS = ("name", "description")
SUPPLIER_FIELDS = ("company_name", "contact_person", "email", "phone", "address", "city", "active")


def _pick(values: Dict[str, Any], allowed: Sequence[str]) -> Dict[str, Any]:
    unknown = sorted(set(values) - set(allowed))
    if unknown:
        raise InvalidInput("Unknown fields", fields=unknown)
    return dict(values)


def _check_product_values(values: Dict[str, Any]) -> Dict[str, Any]:
    if "name" in values and not (values["name"] or "").strip():
        raise InvalidInput("Product name is required")
    if "price" in values:
        try:
            values["price"] = to_money(values["price"])
        except ValueError as e:
            raise InvalidInput("Price must be a number", price=str(values["price"])) from e
        if values["price"] < 0:
            raise InvalidInput("Price must not be negative", price=str(values["price"]))
    if "stock" in values:
        stock = values["stock"]
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            raise InvalidInput("Stock must be a non-negative integer", stock=stock)
    return values


def _require_supplier(tx: Transaction, supplier_id: Any) -> Supplier:
    supplier = Supplier.find(tx, supplier_id) if supplier_id is not None else None
    if supplier is None:
        raise NotFoundError("Supplier not found", supplier_id=supplier_id)
    return supplier


def _require_categories(tx: Transaction, category_ids: Sequence[int]) -> None:
    if not isinstance(category_ids, (list, tuple)) or any(
        isinstance(cid, bool) or not isinstance(cid, int) for cid in category_ids
    ):
        raise InvalidInput("category_ids must be a list of integers", category_ids=repr(category_ids))
    missing = [cid for cid in category_ids if Category.find(tx, cid) is None]
    if missing:
        raise NotFoundError("Category not found", category_ids=missing)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def create_product(tx: Transaction, category_ids: Optional[Sequence[int]] = None, **values: Any) -> Product:
    values = _check_product_values(_pick(values, PRODUCT_FIELDS))
    if "name" not in values:
        raise InvalidInput("Product name is required")
    _require_supplier(tx, values.get("supplier_id"))
    if category_ids:
        _require_categories(tx, category_ids)

    product = Product.new(tx, **values)
    if category_ids:
        product.set_categories(tx, category_ids)
    log.info("Product %s created (id=%s)", product.name, product.id)
    return product


def update_product(
    tx: Transaction,
    product_id: int,
    category_ids: Optional[Sequence[int]] = None,
    **values: Any,
) -> Product:
    """Update given fields; `category_ids`, when not None, replaces all links."""
    product = Product.find(tx, product_id)
    if product is None:
        raise ProductNotFound(product_id=product_id)
    values = _check_product_values(_pick(values, PRODUCT_FIELDS))
    if "supplier_id" in values:
        _require_supplier(tx, values["supplier_id"])
    if category_ids is not None:
        _require_categories(tx, category_ids)

    for key, value in values.items():
        setattr(product, key, value)
    if values:
        product.update(tx, *values)
    if category_ids is not None:
        product.set_categories(tx, category_ids)
    return product


def get_product(tx: Transaction, product_id: int, include_reviews: bool = False) -> Product:
    product = Product.find(tx, product_id)
    if product is None:
        raise ProductNotFound(product_id=product_id)
    supplier = product.get_supplier(tx)
    product.supplier_name = supplier.company_name if supplier else None
    product.categories = product.get_categories(tx)
    product.category_ids = [category.id for category in product.categories]
    product.average_rating = reviews.average_rating(tx, product.id)
    product.review_count = reviews.review_count(tx, product.id)
    if include_reviews:
        product.reviews = reviews.product_reviews(tx, product.id)
    return product


def list_products(tx: Transaction, active_only: bool = False) -> List[Product]:
    if active_only:
        return Product.get(tx, order_by="name", active=True)
    return Product.get(tx, order_by="name")


def products_by_category(tx: Transaction, category_id: int) -> List[Product]:
    return Product.select(
        tx,
        "active = ? AND id IN (SELECT product_id FROM product_category WHERE category_id = ?)",
        (True, category_id),
        order_by="name",
    )


def search_products(tx: Transaction, term: str) -> List[Product]:
    """Active products whose name, description or category name contains term."""
    pattern = f"%{(term or '').strip()}%"
    return Product.select(
        tx,
        "active = ? AND (name LIKE ? OR description LIKE ? OR id IN ("
        "SELECT pc.product_id FROM product_category pc "
        "JOIN category_table c ON c.id = pc.category_id WHERE c.name LIKE ?))",
        (True, pattern, pattern, pattern),
        order_by="name",
    )


def delete_product(tx: Transaction, product_id: int) -> None:
    product = Product.find(tx, product_id)
    if product is None:
        raise ProductNotFound(product_id=product_id)
    ordered = tx.execute(
        "SELECT 1 FROM order_item_table WHERE product_id = ? LIMIT 1", (product_id,), fetch="one"
    )
    if ordered:
        raise ConflictError("Product is referenced by orders; deactivate it instead", product_id=product_id)
    product.delete(tx)
    log.info("Product %s deleted", product_id)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def _load_category(tx: Transaction, category_id: int) -> Category:
    category = Category.find(tx, category_id)
    if category is None:
        raise NotFoundError("Category not found", category_id=category_id)
    return category


def create_category(tx: Transaction, name: str, description: Optional[str] = None) -> Category:
    if not (name or "").strip():
        raise InvalidInput("Category name is required")
    return Category.new(tx, name=name.strip(), description=description)


def get_category(tx: Transaction, category_id: int) -> Category:
    category = _load_category(tx, category_id)
    category.product_count = count_products(tx, category_id)
    return category


def list_categories(tx: Transaction) -> List[Category]:
    return Category.get(tx, order_by="name")


def update_category(tx: Transaction, category_id: int, **values: Any) -> Category:
    values = _pick(values, CATEGORY_FIELDS)
    if "name" in values and not (values["name"] or "").strip():
        raise InvalidInput("Category name is required")
    category = _load_category(tx, category_id)
    for key, value in values.items():
        setattr(category, key, value)
    if values:
        category.update(tx, *values)
    return category


def delete_category(tx: Transaction, category_id: int) -> None:
    _load_category(tx, category_id).delete(tx)


def count_products(tx: Transaction, category_id: int) -> int:
    return Product.count(
        tx,
        "active = ? AND id IN (SELECT product_id FROM product_category WHERE category_id = ?)",
        (True, category_id),
    )


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

def create_supplier(tx: Transaction, **values: Any) -> Supplier:
    values = _pick(values, SUPPLIER_FIELDS)
    if not (values.get("company_name") or "").strip():
        raise InvalidInput("Company name is required")
    supplier = Supplier.new(tx, **values)
    log.info("Supplier %s created (id=%s)", supplier.company_name, supplier.id)
    return supplier


def get_supplier(tx: Transaction, supplier_id: int) -> Supplier:
    return _require_supplier(tx, supplier_id)


def list_suppliers(tx: Transaction) -> List[Supplier]:
    return Supplier.get(tx, order_by="company_name")


def update_supplier(tx: Transaction, supplier_id: int, **values: Any) -> Supplier:
    values = _pick(values, SUPPLIER_FIELDS)
    if "company_name" in values and not (values["company_name"] or "").strip():
        raise InvalidInput("Company name is required")
    supplier = _require_supplier(tx, supplier_id)
    for key, value in values.items():
        setattr(supplier, key, value)
    if values:
        supplier.update(tx, *values)
    return supplier


def delete_supplier(tx: Transaction, supplier_id: int) -> None:
    supplier = _require_supplier(tx, supplier_id)
    if Product.count(tx, "supplier_id = ?", (supplier_id,)):
        raise ConflictError("Supplier still has products", supplier_id=supplier_id)
    supplier.delete(tx)
    log.info("Supplier %s deleted", supplier_id)
