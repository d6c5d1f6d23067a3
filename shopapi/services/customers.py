from decimal import Decimal
from typing import Any, List

from shopapi.database import Transaction
from shopapi.models import Customer, OrderStatus
from shopapi.utils.exceptions import ConflictError, CustomerNotFound, InvalidInput
from shopapi.utils.helpers import to_money
from shopapi.utils.logging import get_logger

log = get_logger(__name__)

CUSTOMER_FIELDS = ("first_name", "last_name", "email", "phone", "address", "city", "postal_code", "active")


def _check(values: dict) -> dict:
    unknown = sorted(set(values) - set(CUSTOMER_FIELDS))
    if unknown:
        raise InvalidInput("Unknown fields", fields=unknown)
    for required in ("first_name", "email"):
        if required in values and not (values[required] or "").strip():
            raise InvalidInput(f"{required} is required")
    if "email" in values:
        values["email"] = values["email"].strip()
    return values


def _email_taken(tx: Transaction, email: str, exclude_id: int | None = None) -> bool:
    found = Customer.get(tx, email=email)
    return any(customer.id != exclude_id for customer in found)


def _load(tx: Transaction, customer_id: int) -> Customer:
    customer = Customer.find(tx, customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id=customer_id)
    return customer


def create_customer(tx: Transaction, **values: Any) -> Customer:
    values = _check(values)
    if "first_name" not in values or "email" not in values:
        raise InvalidInput("first_name and email are required")
    if _email_taken(tx, values["email"]):
        raise ConflictError("Email is already registered", email=values["email"])
    customer = Customer.new(tx, **values)
    log.info("Customer %s created (id=%s)", customer.email, customer.id)
    return customer


def get_customer(tx: Transaction, customer_id: int) -> Customer:
    """Customer with total_orders and total_spent over non-cancelled orders."""
    customer = _load(tx, customer_id)
    row = tx.execute(
        "SELECT COUNT(*) AS total_orders, COALESCE(SUM(total_amount), 0) AS total_spent "
        "FROM order_table WHERE customer_id = ? AND status != ?",
        (customer_id, OrderStatus.CANCELLED.value),
        fetch="one",
    )
    customer.total_orders = int(row["total_orders"])
    customer.total_spent = to_money(row["total_spent"] or Decimal("0"))
    return customer


def list_customers(tx: Transaction) -> List[Customer]:
    return Customer.get(tx, order_by="last_name, first_name")


def update_customer(tx: Transaction, customer_id: int, **values: Any) -> Customer:
    values = _check(values)
    customer = _load(tx, customer_id)
    if "email" in values and _email_taken(tx, values["email"], exclude_id=customer_id):
        raise ConflictError("Email is already registered", email=values["email"])
    for key, value in values.items():
        setattr(customer, key, value)
    if values:
        customer.update(tx, *values)
    return customer


def delete_customer(tx: Transaction, customer_id: int) -> None:
    customer = _load(tx, customer_id)
    for table, label in (("order_table", "orders"), ("review_table", "reviews")):
        row = tx.execute(f"SELECT 1 FROM {table} WHERE customer_id = ? LIMIT 1", (customer_id,), fetch="one")
        if row:
            raise ConflictError(f"Customer has {label}", customer_id=customer_id)
    customer.delete(tx)
    log.info("Customer %s deleted", customer_id)
