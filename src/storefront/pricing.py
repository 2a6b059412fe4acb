"""Cart pricing: subtotal, tax, promotional discount and total."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .errors import InvalidPromoCodeError
from .models import Cart, CartItem
from .money import ZERO, to_money

TAX_RATE = Decimal("0.10")


@dataclass(frozen=True)
class Promotion:
    """A promo code and what it takes off an order."""

    code: str
    rate: Decimal  # fraction of subtotal
    free_shipping: bool = False


PROMOTIONS: dict[str, Promotion] = {
    p.code: p
    for p in (
        Promotion("SAVE10", Decimal("0.10")),
        Promotion("SAVE20", Decimal("0.20")),
        Promotion("FREESHIP", Decimal("0"), free_shipping=True),
    )
}


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def lookup_promotion(code: str) -> Promotion:
    """
    Resolve a promo code, ignoring case and surrounding whitespace.

    Raises:
        InvalidPromoCodeError: If the code is unknown.
    """
    promotion = PROMOTIONS.get(code.strip().upper())
    if promotion is None:
        raise InvalidPromoCodeError(code)
    return promotion


def compute_totals(items: Iterable[CartItem], promo_code: str | None = None) -> Totals:
    """
    Price a set of cart lines.

    Each derived amount is rounded to cents before it feeds the next one, so
    ``total == subtotal + tax - discount`` holds exactly.
    """
    subtotal = to_money(sum((item.line_total for item in items), ZERO))
    tax = to_money(subtotal * TAX_RATE)
    discount = ZERO
    if promo_code:
        discount = to_money(subtotal * lookup_promotion(promo_code).rate)
    total = to_money(subtotal + tax - discount)
    return Totals(subtotal=subtotal, tax=tax, discount=discount, total=total)


def reprice(cart: Cart) -> Cart:
    """Recompute every derived amount on ``cart`` in place and return it."""
    totals = compute_totals(cart.items, cart.promo_code)
    cart.subtotal = totals.subtotal
    cart.tax = totals.tax
    cart.discount = totals.discount
    cart.total = totals.total
    return cart


def shipping_cost(delivery_price: Decimal, promo_code: str | None) -> Decimal:
    """Delivery charge after any free-shipping promotion."""
    if promo_code and lookup_promotion(promo_code).free_shipping:
        return ZERO
    return to_money(delivery_price)
