"""
Order pricing.
Pure functions only: no database access, no app context.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional

from shopapi.utils.exceptions import InvalidInput
from shopapi.utils.helpers import CENTS, to_money

TAX_RATE = Decimal("0.10")


@dataclass(frozen=True)
class PriceLine:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    lines: List[PriceLine] = field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    shipping_cost: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")


def _money(value: Any, name: str) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError as e:
        raise InvalidInput(f"{name} must be a number", value=str(value)) from e
    if amount < 0:
        raise InvalidInput(f"{name} must not be negative", value=str(value))
    return amount


def price_line(product_id: int, quantity: Any, unit_price: Any) -> PriceLine:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput("Quantity must be a positive integer", product_id=product_id, quantity=quantity)
    return PriceLine(product_id, quantity, _money(unit_price, "Unit price"))


def calculate(
    lines: Iterable[tuple[int, int, Any]],
    shipping_cost: Any = 0,
    tax_rate: Optional[Any] = None,
) -> PriceBreakdown:
    """
    Price (product_id, quantity, unit_price) triples.

    subtotal = sum(unit_price * quantity)
    tax      = subtotal * tax_rate, rounded half-up to cents
    total    = subtotal + tax + shipping_cost
    """
    rate = TAX_RATE if tax_rate is None else _money_rate(tax_rate)
    priced = [price_line(product_id, quantity, unit_price) for product_id, quantity, unit_price in lines]
    shipping = _money(shipping_cost, "Shipping cost")

    subtotal = sum((line.total_price for line in priced), Decimal("0.00"))
    tax = (subtotal * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    return PriceBreakdown(
        lines=priced,
        subtotal=subtotal,
        tax=tax,
        shipping_cost=shipping,
        total=subtotal + tax + shipping,
    )


def _money_rate(value: Any) -> Decimal:
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidInput("Tax rate must be a number", value=str(value)) from e
    if not rate.is_finite() or rate < 0:
        raise InvalidInput("Tax rate must be a non-negative number", value=str(value))
    return rate
