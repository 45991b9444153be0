"""
Unit tests for the payment gateways and card helpers.
"""
from decimal import Decimal
from unittest.mock import patch, MagicMock

import pytest
import requests

from app.services.payment_service import (
    PaymentRequest, SimulatedGateway, HttpGateway, get_payment_gateway,
    validate_card_number, format_card_number, card_type, DEFAULT_FAILURE_MESSAGE,
)


def _request(card_number='4242424242424242', expiry='12/29', cvv='123'):
    return PaymentRequest(
        amount=Decimal('28.99'),
        currency='GBP',
        card_details={'card_number': card_number, 'card_name': 'Jane', 'expiry_date': expiry, 'cvv': cvv},
        billing_address={'city': 'Bath'},
        reference='LUM-100001',
    )


class TestSimulatedGateway:

    def test_valid_card_is_charged(self):
        result = SimulatedGateway().process(_request())
        assert result.success
        assert result.transaction_id.startswith('txn_')
        assert len(result.transaction_id) == 17

    def test_card_spaces_are_ignored(self):
        assert SimulatedGateway().process(_request('4242 4242 4242 4242')).success

    def test_short_card_number(self):
        result = SimulatedGateway().process(_request('4242'))
        assert not result.success
        assert result.error == 'Invalid card number'

    def test_expiry_without_slash(self):
        assert SimulatedGateway().process(_request(expiry='1229')).error == 'Invalid expiry date'

    def test_short_cvv(self):
        assert SimulatedGateway().process(_request(cvv='12')).error == 'Invalid CVV'

    def test_card_ending_0000_is_declined(self):
        result = SimulatedGateway().process(_request('4000000000000000'))
        assert not result.success
        assert 'declined' in result.error_message


class TestHttpGateway:

    def test_requires_url(self):
        with pytest.raises(ValueError):
            HttpGateway('', 'key')

    @patch('app.services.payment_service.requests.post')
    def test_successful_charge(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, status_code=200, content=b'{}',
                                           json=lambda: {'success': True, 'transaction_id': 'ch_1'})
        gateway = HttpGateway('https://pay.example.com/', 'secret')

        result = gateway.process(_request('4242 4242 4242 4242'))

        assert result.success
        assert result.transaction_id == 'ch_1'
        url = mock_post.call_args[0][0]
        payload = mock_post.call_args[1]['json']
        assert url == 'https://pay.example.com/charges'
        assert payload['card']['number'] == '4242424242424242'
        assert payload['amount'] == '28.99'
        assert mock_post.call_args[1]['headers']['Authorization'] == 'Bearer secret'

    @patch('app.services.payment_service.requests.post')
    def test_rejection_carries_gateway_message(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=402, content=b'{}',
                                           json=lambda: {'success': False, 'error': 'Insufficient funds'})
        result = HttpGateway('https://pay.example.com', 'secret').process(_request())
        assert not result.success
        assert result.error_message == 'Insufficient funds'

    @patch('app.services.payment_service.requests.post')
    def test_network_error_is_generic_failure(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('down')
        result = HttpGateway('https://pay.example.com', 'secret').process(_request())
        assert not result.success
        assert result.error_message == DEFAULT_FAILURE_MESSAGE


class TestGatewaySelection:

    def test_simulated_by_default(self, app):
        with app.app_context():
            assert isinstance(get_payment_gateway(), SimulatedGateway)

    def test_unknown_provider(self, app):
        with app.app_context():
            app.config['PAYMENT_PROVIDER'] = 'barter'
            try:
                with pytest.raises(ValueError):
                    get_payment_gateway()
            finally:
                app.config['PAYMENT_PROVIDER'] = 'simulated'


class TestCardHelpers:

    def test_luhn(self):
        assert validate_card_number('4242 4242 4242 4242')
        assert not validate_card_number('4242 4242 4242 4241')
        assert not validate_card_number('1234')

    def test_format(self):
        assert format_card_number('4242424242424242') == '4242 4242 4242 4242'

    def test_card_type(self):
        assert card_type('4242') == 'Visa'
        assert card_type('5500 0000') == 'Mastercard'
        assert card_type('3782') == 'American Express'
        assert card_type('9999') == 'Unknown'
