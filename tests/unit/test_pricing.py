"""
Unit tests for shipping rules and order totals.
"""
from decimal import Decimal

import pytest

from app.exceptions import BusinessLogicError
from app.services.pricing_service import (
    shipping_options, shipping_cost, order_totals, amount_to_free_shipping
)


class TestShippingCost:
    """Standard is free from £50; express is always charged."""

    def test_standard_below_threshold_is_charged(self):
        assert shipping_cost(Decimal('49.99'), 'standard') == Decimal('4.99')

    def test_standard_at_threshold_is_free(self):
        assert shipping_cost(Decimal('50.00'), 'standard') == Decimal('0.00')

    def test_express_never_free(self):
        assert shipping_cost(Decimal('500.00'), 'express') == Decimal('9.99')

    def test_unknown_method_raises(self):
        with pytest.raises(BusinessLogicError):
            shipping_cost(Decimal('10.00'), 'carrier-pigeon')

    def test_config_overrides_defaults(self):
        options = shipping_options({
            'FREE_SHIPPING_THRESHOLD': '30.00',
            'STANDARD_SHIPPING_COST': '3.50',
            'EXPRESS_SHIPPING_COST': '12.00',
        })
        assert shipping_cost(Decimal('29.99'), 'standard', options) == Decimal('3.50')
        assert shipping_cost(Decimal('30.00'), 'standard', options) == Decimal('0.00')
        assert shipping_cost(Decimal('30.00'), 'express', options) == Decimal('12.00')


class TestOrderTotals:

    def test_total_is_subtotal_plus_shipping(self):
        totals = order_totals(Decimal('24.00'), 'standard')
        assert totals == {
            'subtotal': Decimal('24.00'),
            'shipping': Decimal('4.99'),
            'total': Decimal('28.99'),
        }

    def test_free_standard_shipping_total(self):
        totals = order_totals(Decimal('72.00'), 'standard')
        assert totals['shipping'] == Decimal('0.00')
        assert totals['total'] == Decimal('72.00')

    def test_amount_to_free_shipping(self):
        assert amount_to_free_shipping(Decimal('35.50')) == Decimal('14.50')
        assert amount_to_free_shipping(Decimal('80.00')) == Decimal('0.00')

    def test_just_below_threshold(self):
        totals = order_totals(Decimal('49.99'), 'standard')
        assert totals['shipping'] == Decimal('4.99')
        assert totals['total'] == Decimal('54.98')

    def test_exactly_at_threshold(self):
        totals = order_totals(Decimal('50.00'), 'standard')
        assert totals['shipping'] == Decimal('0.00')
        assert totals['total'] == Decimal('50.00')

    def test_sub_penny_subtotal_below_threshold_is_charged(self):
        totals = order_totals(Decimal('49.995'), 'standard')

        assert totals['subtotal'] == Decimal('49.995')
        assert totals['shipping'] == Decimal('4.99')
        assert totals['total'] == totals['subtotal'] + totals['shipping']
