"""Shipping rules and order totals for the checkout."""
from decimal import Decimal
from typing import Mapping, NamedTuple, Optional

from app.exceptions import BusinessLogicError

FREE_SHIPPING_THRESHOLD = Decimal('50.00')
STANDARD_SHIPPING_COST = Decimal('4.99')
EXPRESS_SHIPPING_COST = Decimal('9.99')

TWO_PLACES = Decimal('0.01')


class ShippingOption(NamedTuple):
    code: str
    name: str
    cost: Decimal
    delivery_estimate: str
    # Subtotal at or above which the option is free; None means never free
    free_threshold: Optional[Decimal] = None


def shipping_options(config: Optional[Mapping] = None) -> dict:
    """
    Build the checkout shipping options, keyed by code.

    Args:
        config: Flask config (or any mapping); module defaults when None
    """
    config = config or {}
    threshold = Decimal(str(config.get('FREE_SHIPPING_THRESHOLD', FREE_SHIPPING_THRESHOLD)))
    standard = Decimal(str(config.get('STANDARD_SHIPPING_COST', STANDARD_SHIPPING_COST)))
    express = Decimal(str(config.get('EXPRESS_SHIPPING_COST', EXPRESS_SHIPPING_COST)))
    return {
        'standard': ShippingOption('standard', 'Standard Delivery', standard, '3-5 business days', threshold),
        'express': ShippingOption('express', 'Express Delivery', express, '1-2 business days'),
    }


def _to_decimal(value) -> Decimal:
    # Not rounded: the threshold compares the exact subtotal
    return Decimal(str(value or 0))


def shipping_cost(subtotal, method: str = 'standard', options: Optional[dict] = None) -> Decimal:
    """
    Shipping charge for a subtotal.

    Standard delivery is free when the subtotal reaches the threshold,
    otherwise it costs the flat rate. Express is never free.

    Raises:
        BusinessLogicError: for an unknown method code
    """
    options = options or shipping_options()
    option = options.get(method)
    if option is None:
        raise BusinessLogicError(f'Unknown shipping method: {method}')

    subtotal = _to_decimal(subtotal)
    if option.free_threshold is not None and subtotal >= option.free_threshold:
        return Decimal('0.00')
    return option.cost.quantize(TWO_PLACES)


def order_totals(subtotal, method: str = 'standard', options: Optional[dict] = None) -> dict:
    """
    Return subtotal, shipping and total (total = subtotal + shipping).

    Amounts are kept exact; cart subtotals already carry two places.
    """
    subtotal = _to_decimal(subtotal)
    shipping = shipping_cost(subtotal, method, options)
    return {
        'subtotal': subtotal,
        'shipping': shipping,
        'total': subtotal + shipping,
    }


def amount_to_free_shipping(subtotal, options: Optional[dict] = None) -> Decimal:
    """How much more the customer must spend for free standard delivery."""
    options = options or shipping_options()
    threshold = options['standard'].free_threshold
    if threshold is None:
        return Decimal('0.00')
    remaining = threshold - _to_decimal(subtotal)
    return remaining if remaining > 0 else Decimal('0.00')
