"""
Unit tests for promotion display rules.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.models import Promotion
from app.services import promotion_service
from app.utils.text import promotion_code

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _promotion(**overrides):
    values = dict(name='Summer Sale', code='SUMMER', type='percentage', value=Decimal('20.00'),
                  is_active=True, current_usage_count=0)
    values.update(overrides)
    return Promotion(**values)


class TestFormatValue:

    def test_percentage(self):
        assert promotion_service.format_value(_promotion(value=Decimal('20.00'))) == '20%'
        assert promotion_service.format_value(_promotion(value=Decimal('12.50'))) == '12.5%'

    def test_fixed_amount(self):
        assert promotion_service.format_value(_promotion(type='fixed_amount', value=Decimal('5'))) == '£5.00'

    def test_free_shipping(self):
        assert promotion_service.format_value(_promotion(type='free_shipping')) == 'Free Shipping'

    def test_buy_x_get_y(self):
        assert promotion_service.format_value(_promotion(type='buy_x_get_y', value=Decimal('2'))) == 'Buy 2 Get 1'


class TestStatus:

    def test_inactive_wins(self):
        promo = _promotion(is_active=False, ends_at=NOW - timedelta(days=1))
        assert promotion_service.status(promo, NOW).label == 'Inactive'

    def test_scheduled(self):
        promo = _promotion(starts_at=NOW + timedelta(days=1))
        assert promotion_service.status(promo, NOW).label == 'Scheduled'

    def test_expired(self):
        promo = _promotion(ends_at=NOW - timedelta(minutes=1))
        assert promotion_service.status(promo, NOW).label == 'Expired'

    def test_used_up(self):
        promo = _promotion(usage_limit=10, current_usage_count=10)
        assert promotion_service.status(promo, NOW).label == 'Used Up'

    def test_active(self):
        promo = _promotion(starts_at=NOW - timedelta(days=1), ends_at=NOW + timedelta(days=1))
        assert promotion_service.status(promo, NOW).label == 'Active'

    def test_naive_datetimes_treated_as_utc(self):
        promo = _promotion(ends_at=datetime(2026, 5, 31, 12, 0))
        assert promotion_service.status(promo, NOW).label == 'Expired'

    def test_summary(self):
        promotions = [
            _promotion(current_usage_count=3),
            _promotion(is_active=False),
            _promotion(ends_at=NOW - timedelta(days=2), current_usage_count=4),
        ]
        summary = promotion_service.summary(promotions, NOW)
        assert summary['total'] == 3
        assert summary['Active'] == 1
        assert summary['Inactive'] == 1
        assert summary['Expired'] == 1
        assert summary['total_usage'] == 7


class TestCodes:

    def test_generated_code(self):
        assert promotion_code('Summer Sale 2024') == 'SUMMERSALE'
        assert promotion_code('10% off!') == '10OFF'
        assert promotion_code('') == ''
