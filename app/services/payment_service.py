"""
Payment gateway for storefront checkout.

The gateway contract is ``process(PaymentRequest) -> PaymentResult`` plus
``refund(transaction_id)``. ``PAYMENT_PROVIDER`` selects the implementation:

- ``simulated``: deterministic demo gateway, no network
- ``http``: posts JSON to ``PAYMENT_API_URL`` with a bearer key
"""
import logging
import re
import secrets
import string
import time
from decimal import Decimal
from typing import Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = 'Payment processing failed'

_NON_DIGIT = re.compile(r'\D')


class PaymentRequest:
    """Charge request: amount, currency, card details and billing address."""

    def __init__(self, amount, currency: str, card_details: dict, billing_address: dict,
                 reference: Optional[str] = None):
        self.amount = Decimal(str(amount))
        self.currency = currency
        self.card_details = card_details
        self.billing_address = billing_address
        self.reference = reference

    def __repr__(self):
        return f"<PaymentRequest(amount={self.amount}, currency='{self.currency}')>"


class PaymentResult:
    """Outcome of a charge or refund."""

    def __init__(self, success: bool, transaction_id: Optional[str] = None, error: Optional[str] = None):
        self.success = success
        self.transaction_id = transaction_id
        self.error = error

    @property
    def error_message(self) -> str:
        return self.error or DEFAULT_FAILURE_MESSAGE

    def __repr__(self):
        return f"<PaymentResult(success={self.success}, txn='{self.transaction_id}', error='{self.error}')>"


class SimulatedGateway:
    """
    Demo gateway with fixed validation rules.

    Any card number ending in 0000 is declined.
    """

    def __init__(self, delay: float = 0):
        self.delay = delay

    def process(self, payment: PaymentRequest) -> PaymentResult:
        if self.delay:
            time.sleep(self.delay)

        card = payment.card_details or {}
        card_number = (card.get('card_number') or '').replace(' ', '')
        expiry = card.get('expiry_date') or ''
        cvv = card.get('cvv') or ''

        if len(card_number) < 15:
            return PaymentResult(False, error='Invalid card number')
        if '/' not in expiry:
            return PaymentResult(False, error='Invalid expiry date')
        if len(cvv) < 3:
            return PaymentResult(False, error='Invalid CVV')
        if card_number.endswith('0000'):
            return PaymentResult(False, error='Card declined. Please try a different payment method.')

        alphabet = string.ascii_lowercase + string.digits
        transaction_id = 'txn_' + ''.join(secrets.choice(alphabet) for _ in range(13))
        logger.info(f"[PAYMENT] Simulated charge {payment.amount} {payment.currency}: {transaction_id}")
        return PaymentResult(True, transaction_id=transaction_id)

    def refund(self, transaction_id: str) -> PaymentResult:
        logger.info(f"[PAYMENT] Simulated refund of {transaction_id}")
        return PaymentResult(True, transaction_id=transaction_id)


class HttpGateway:
    """JSON-over-HTTP gateway client."""

    def __init__(self, base_url: str, api_key: str, timeout: int = 15):
        if not base_url:
            raise ValueError("PAYMENT_API_URL is required for the http payment provider")
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = {
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json'
        }

    def _post(self, path: str, payload: dict) -> PaymentResult:
        url = f"{self.base_url}{path}"
        try:
            response = requests.post(url, json=payload, headers=self.headers, timeout=self.timeout)
            data = response.json() if response.content else {}
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[PAYMENT] Gateway request to {path} failed: {e}")
            return PaymentResult(False, error=DEFAULT_FAILURE_MESSAGE)

        if response.ok and data.get('success', True):
            return PaymentResult(True, transaction_id=data.get('transaction_id') or data.get('id'))

        logger.warning(f"[PAYMENT] Gateway rejected {path}: {response.status_code} {data}")
        return PaymentResult(False, error=data.get('error') or DEFAULT_FAILURE_MESSAGE)

    def process(self, payment: PaymentRequest) -> PaymentResult:
        card = payment.card_details or {}
        payload = {
            'amount': str(payment.amount),
            'currency': payment.currency,
            'card': {
                'number': _NON_DIGIT.sub('', card.get('card_number') or ''),
                'name': card.get('card_name'),
                'expiry': card.get('expiry_date'),
                'cvv': card.get('cvv'),
            },
            'billing_address': payment.billing_address,
            'reference': payment.reference,
        }
        logger.info(f"[PAYMENT] Charging {payment.amount} {payment.currency} ref={payment.reference}")
        return self._post('/charges', payload)

    def refund(self, transaction_id: str) -> PaymentResult:
        logger.info(f"[PAYMENT] Refunding {transaction_id}")
        return self._post('/refunds', {'transaction_id': transaction_id})


def get_payment_gateway():
    """Build the gateway configured by PAYMENT_PROVIDER."""
    cfg = current_app.config
    provider = cfg.get('PAYMENT_PROVIDER', 'simulated')
    if provider == 'simulated':
        return SimulatedGateway(delay=cfg.get('PAYMENT_SIMULATED_DELAY', 0))
    if provider == 'http':
        return HttpGateway(cfg.get('PAYMENT_API_URL'), cfg.get('PAYMENT_API_KEY', ''),
                           timeout=cfg.get('PAYMENT_TIMEOUT', 15))
    raise ValueError(f"Unknown PAYMENT_PROVIDER: {provider}")


def validate_card_number(card_number: str) -> bool:
    """Luhn check over the digits of a 13-19 digit card number."""
    digits = _NON_DIGIT.sub('', card_number or '')
    if len(digits) < 13 or len(digits) > 19:
        return False

    total = 0
    for index, char in enumerate(reversed(digits)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def format_card_number(card_number: str) -> str:
    """Group digits in fours: '4242424242424242' -> '4242 4242 4242 4242'."""
    digits = _NON_DIGIT.sub('', card_number or '')
    return ' '.join(digits[i:i + 4] for i in range(0, len(digits), 4))


def card_type(card_number: str) -> str:
    digits = _NON_DIGIT.sub('', card_number or '')
    if re.match(r'^4', digits):
        return 'Visa'
    if re.match(r'^5[1-5]', digits):
        return 'Mastercard'
    if re.match(r'^3[47]', digits):
        return 'American Express'
    if re.match(r'^6(?:011|5)', digits):
        return 'Discover'
    return 'Unknown'
