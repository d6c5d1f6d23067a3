"""
Order orchestration.

Every function takes the caller's Transaction and threads it through all
record calls; nothing here commits or rolls back. A failure anywhere leaves
the caller's `with db.transaction()` block to undo every write.
"""
import secrets
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from flask import current_app, has_app_context

from shopapi.database import Transaction
from shopapi.models import Customer, Order, OrderItem, OrderStatus, Product
from shopapi.services import pricing
from shopapi.utils.exceptions import (
    AlreadyTerminal,
    ConflictError,
    CustomerNotFound,
    EmptyOrder,
    InsufficientStock,
    InvalidInput,
    OrderNotFound,
    ProductNotFound,
    ValidationError,
)
from shopapi.utils.helpers import utcnow
from shopapi.utils.logging import get_logger

log = get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
MUTABLE_FIELDS = ("status", "shipping_address", "notes")


def generate_order_number(tx: Transaction, now: Optional[datetime] = None) -> str:
    """ORD-YYYYMMDD-XXXXXXXX, unique among stored orders."""
    now = now or utcnow()
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = f"ORD-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"
        if Order.first(tx, order_number=candidate) is None:
            return candidate
        log.warning("Order number collision on %s, regenerating", candidate)
    raise ConflictError("Could not allocate a unique order number")


def _tax_rate() -> Any:
    if has_app_context():
        return current_app.config.get("TAX_RATE", pricing.TAX_RATE)
    return pricing.TAX_RATE


def _parse_status(status: Any) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise InvalidInput(
            "Unknown order status",
            status=str(status),
            allowed=[s.value for s in OrderStatus],
        ) from None


def _load(tx: Transaction, order_id: int) -> Order:
    order = Order.find(tx, order_id)
    if order is None:
        raise OrderNotFound(order_id=order_id)
    return order


def _resolve_products(tx: Transaction, items: Sequence[Mapping[str, Any]]) -> Dict[int, Product]:
    products: Dict[int, Product] = {}
    for item in items:
        if not isinstance(item, Mapping):
            raise InvalidInput("Each item must be an object with product_id and quantity", item=repr(item))
        product_id = item.get("product_id")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise InvalidInput("Each item needs an integer product_id", product_id=product_id)
        if product_id in products:
            continue
        product = Product.find(tx, product_id)
        if product is None:
            raise ProductNotFound(product_id=product_id)
        products[product_id] = product
    return products


def create_order(
    tx: Transaction,
    customer_id: int,
    items: Sequence[Mapping[str, Any]],
    shipping_cost: Any = 0,
    shipping_address: Optional[str] = None,
    notes: Optional[str] = None,
    tax_rate: Optional[Any] = None,
) -> Order:
    """
    Create an order and its items as one unit.

    `items` is a sequence of {"product_id": int, "quantity": int}. Unit prices
    are snapshotted from the products, never taken from the request. All
    validation runs before the first write.
    """
    customer = Customer.find(tx, customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id=customer_id)
    if not items:
        raise EmptyOrder(customer_id=customer_id)

    products = _resolve_products(tx, items)
    breakdown = pricing.calculate(
        [(item["product_id"], item.get("quantity"), products[item["product_id"]].price) for item in items],
        shipping_cost,
        tax_rate if tax_rate is not None else _tax_rate(),
    )

    wanted = Counter()
    for line in breakdown.lines:
        wanted[line.product_id] += line.quantity
    for product_id, quantity in wanted.items():
        if products[product_id].stock < quantity:
            raise InsufficientStock(
                product_id=product_id,
                requested=quantity,
                available=products[product_id].stock,
            )

    now = utcnow()
    order = Order.new(
        tx,
        order_number=generate_order_number(tx, now),
        customer_id=customer.id,
        order_date=now,
        status=OrderStatus.PENDING.value,
        total_amount=breakdown.total,
        tax_amount=breakdown.tax,
        shipping_cost=breakdown.shipping_cost,
        shipping_address=shipping_address,
        notes=notes,
    )
    order.items = [
        OrderItem.new(
            tx,
            order_id=order.id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        )
        for line in breakdown.lines
    ]

    for product_id, quantity in wanted.items():
        # Guarded decrement; a concurrent order may have taken the stock since the check
        tx.execute(
            "UPDATE product_table SET stock = stock - ?, updated_at = ? WHERE id = ? AND stock >= ?",
            (quantity, now, product_id, quantity),
            fetch="none",
        )
        if tx.rowcount == 0:
            raise InsufficientStock(product_id=product_id, requested=quantity)

    order.subtotal = breakdown.subtotal
    log.info(
        "Order %s created for customer %s: %d items, total %s",
        order.order_number, customer.id, len(order.items), order.total_amount,
    )
    return order


def get_order(tx: Transaction, order_id: int) -> Order:
    order = _load(tx, order_id)
    order.items = order.get_items(tx)
    order.total_items = sum(item.quantity for item in order.items)
    customer = order.get_customer(tx)
    order.customer_name = customer.full_name if customer else None
    order.customer_email = customer.email if customer else None
    return order


def list_orders(
    tx: Transaction,
    customer_id: Optional[int] = None,
    status: Optional[Any] = None,
) -> List[Order]:
    """Newest first, optionally filtered by customer and/or status."""
    clauses: List[str] = []
    params: List[Any] = []
    if customer_id is not None:
        clauses.append("customer_id = ?")
        params.append(customer_id)
    if status is not None:
        clauses.append("status = ?")
        params.append(_parse_status(status).value)
    orders = Order.select(
        tx,
        " AND ".join(clauses) or None,
        params,
        order_by="order_date DESC, id DESC",
    )
    if not orders:
        return orders

    ids = [order.id for order in orders]
    placeholders = ", ".join("?" for _ in ids)
    counts = {
        row["order_id"]: int(row["total_items"])
        for row in tx.execute(
            "SELECT order_id, SUM(quantity) AS total_items FROM order_item_table "
            f"WHERE order_id IN ({placeholders}) GROUP BY order_id",
            ids,
        )
    }
    for order in orders:
        order.total_items = counts.get(order.id, 0)
    return orders


def _transition(tx: Transaction, order: Order, status: OrderStatus) -> bool:
    """
    Move a non-terminal order to `status`.

    The terminal check is part of the UPDATE itself, so of two overlapping
    callers only one sees a changed row.
    """
    now = utcnow()
    terminal = [s.value for s in OrderStatus.terminal()]
    tx.execute(
        "UPDATE order_table SET status = ?, updated_at = ? "
        "WHERE id = ? AND status NOT IN (?, ?)",
        (status.value, now, order.id, *terminal),
        fetch="none",
    )
    if tx.rowcount == 0:
        return False
    order.status = status.value
    order.updated_at = now
    return True


def _restore_stock(tx: Transaction, order: Order) -> None:
    now = utcnow()
    for item in order.get_items(tx):
        tx.execute(
            "UPDATE product_table SET stock = stock + ?, updated_at = ? WHERE id = ?",
            (item.quantity, now, item.product_id),
            fetch="none",
        )


def _current_status(tx: Transaction, order_id: int) -> Any:
    row = tx.execute("SELECT status FROM order_table WHERE id = ?", (order_id,), fetch="one")
    return row["status"] if row else None


def cancel_order(tx: Transaction, order_id: int) -> Order:
    """Mark the order Cancelled, then restore every item's quantity to stock."""
    order = _load(tx, order_id)
    if order.is_terminal or not _transition(tx, order, OrderStatus.CANCELLED):
        raise AlreadyTerminal(order_id=order_id, status=_current_status(tx, order_id) or order.status)

    _restore_stock(tx, order)
    log.info("Order %s cancelled", order.order_number)
    return order


def update_order_status(tx: Transaction, order_id: int, status: Any) -> Order:
    new_status = _parse_status(status)
    if new_status == OrderStatus.CANCELLED:
        return cancel_order(tx, order_id)

    order = _load(tx, order_id)
    if order.is_terminal:
        raise AlreadyTerminal(order_id=order_id, status=order.status)
    if order.status != new_status:
        old_status = order.status
        if not _transition(tx, order, new_status):
            raise AlreadyTerminal(order_id=order_id, status=_current_status(tx, order_id))
        log.info("Order %s status %s → %s", order.order_number, old_status, new_status.value)
    return order


def update_order(tx: Transaction, order_id: int, changes: Mapping[str, Any]) -> Order:
    """Change status, shipping_address and/or notes. Everything else is fixed at creation."""
    immutable = sorted(set(changes) - set(MUTABLE_FIELDS))
    if immutable:
        raise ValidationError(
            "Only status, shipping_address and notes can be changed",
            fields=immutable,
        )

    order = _load(tx, order_id)
    if changes.get("status") is not None and changes["status"] != order.status:
        order = update_order_status(tx, order_id, changes["status"])

    keys = [key for key in ("shipping_address", "notes") if key in changes]
    for key in keys:
        setattr(order, key, changes[key])
    if keys:
        order.update(tx, *keys)
    return order


def delete_order(tx: Transaction, order_id: int) -> None:
    """Hard delete; items go with the order. Open orders give their stock back first."""
    order = _load(tx, order_id)
    if not order.is_terminal and _transition(tx, order, OrderStatus.CANCELLED):
        _restore_stock(tx, order)
    order.delete(tx)
    log.info("Order %s deleted", order.order_number)
