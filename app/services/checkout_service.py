"""
Checkout step sequencer.

Four linear steps: shipping (1) -> payment (2) -> review (3) -> confirmation (4).
The draft lives in the Flask session between requests and is discarded once
the order is placed. Card number, expiry and CVV never reach the session:
they are held only for the request that posts them.
"""
import logging
import uuid
from typing import Optional

from flask import session

from app.exceptions import BusinessLogicError
from app.services import order_service
from app.services.cart_service import clear_cart
from app.services.email_service import send_order_confirmation
from app.services.payment_service import get_payment_gateway
from app.services.pricing_service import shipping_options

logger = logging.getLogger(__name__)

DRAFT_SESSION_KEY = 'checkout_draft'
LAST_ORDER_SESSION_KEY = 'last_order_number'

STEP_SHIPPING = 1
STEP_PAYMENT = 2
STEP_REVIEW = 3
STEP_CONFIRMATION = 4

STEP_NAMES = {
    STEP_SHIPPING: 'Shipping',
    STEP_PAYMENT: 'Payment',
    STEP_REVIEW: 'Review',
    STEP_CONFIRMATION: 'Confirmation',
}

COUNTRIES = [
    ('GB', 'United Kingdom'),
    ('US', 'United States'),
    ('CA', 'Canada'),
    ('AU', 'Australia'),
    ('DE', 'Germany'),
    ('FR', 'France'),
]

ADDRESS_FIELDS = ('first_name', 'last_name', 'company', 'address1', 'address2',
                  'city', 'state', 'postal_code', 'country', 'phone')
PAYMENT_FIELDS = ('card_number', 'card_name', 'expiry_date', 'cvv')
# Never written to the session; the place-order POST carries them again
CARD_SECRET_FIELDS = ('card_number', 'expiry_date', 'cvv')

REQUIRED_SHIPPING_FIELDS = ('first_name', 'last_name', 'address1', 'city', 'state', 'postal_code', 'phone')
REQUIRED_PAYMENT_FIELDS = PAYMENT_FIELDS
REQUIRED_BILLING_FIELDS = ('first_name', 'last_name', 'address1', 'city', 'state', 'postal_code')

SHIPPING_REQUIRED_MESSAGE = 'Please fill in all required fields'
PAYMENT_REQUIRED_MESSAGE = 'Please fill in all payment details'
BILLING_REQUIRED_MESSAGE = 'Please fill in all billing address fields'


def _empty_address() -> dict:
    address = {field: '' for field in ADDRESS_FIELDS}
    address['country'] = 'GB'
    return address


def _missing(values: dict, fields) -> bool:
    return any(not (values.get(field) or '').strip() for field in fields)


class CheckoutDraft:
    """Transient multi-step checkout state."""

    def __init__(self, step: int = STEP_SHIPPING, shipping: Optional[dict] = None,
                 billing: Optional[dict] = None, payment: Optional[dict] = None,
                 shipping_method: str = 'standard', billing_same: bool = True,
                 idempotency_key: Optional[str] = None, order_number: Optional[str] = None,
                 card_last4: str = ''):
        self.step = step
        self.shipping = {**_empty_address(), **(shipping or {})}
        self.billing = {**_empty_address(), **(billing or {})}
        self.payment = {field: '' for field in PAYMENT_FIELDS}
        self._card_last4 = card_last4
        self.update_payment(**(payment or {}))
        self.shipping_method = shipping_method
        self.billing_same = billing_same
        self.idempotency_key = idempotency_key or uuid.uuid4().hex
        self.order_number = order_number

    # Field edits

    def update_shipping(self, **fields) -> None:
        """Edit shipping fields; mirrored into billing while billing_same is set."""
        for name, value in fields.items():
            if name not in ADDRESS_FIELDS:
                continue
            value = value if value is not None else ''
            self.shipping[name] = value
            if self.billing_same:
                self.billing[name] = value

    def update_billing(self, **fields) -> None:
        for name, value in fields.items():
            if name in ADDRESS_FIELDS:
                self.billing[name] = value if value is not None else ''

    def update_payment(self, **fields) -> None:
        for name, value in fields.items():
            if name in PAYMENT_FIELDS:
                self.payment[name] = value if value is not None else ''
        digits = ''.join(ch for ch in self.payment['card_number'] if ch.isdigit())
        if digits:
            self._card_last4 = digits[-4:]

    def has_card(self) -> bool:
        """True while the full card details are held for this request."""
        return not _missing(self.payment, REQUIRED_PAYMENT_FIELDS)

    def set_billing_same(self, value: bool) -> None:
        """Turning the flag on copies the current shipping address over billing."""
        self.billing_same = bool(value)
        if self.billing_same:
            self.billing = dict(self.shipping)

    def set_shipping_method(self, method: str, options: dict) -> None:
        if method not in options:
            raise BusinessLogicError(f'Unknown shipping method: {method}')
        self.shipping_method = method

    # Step transitions

    def validate_step(self) -> Optional[str]:
        """Error message for the current step, or None when it may advance."""
        if self.step == STEP_SHIPPING:
            if _missing(self.shipping, REQUIRED_SHIPPING_FIELDS):
                return SHIPPING_REQUIRED_MESSAGE
        elif self.step == STEP_PAYMENT:
            if _missing(self.payment, REQUIRED_PAYMENT_FIELDS):
                return PAYMENT_REQUIRED_MESSAGE
            if not self.billing_same and _missing(self.billing, REQUIRED_BILLING_FIELDS):
                return BILLING_REQUIRED_MESSAGE
        return None

    def advance(self) -> Optional[str]:
        """
        Continue to the next step if the current one validates.

        Review is left only by placing the order, so advancing from review
        or confirmation does nothing.

        Returns:
            The validation error, or None
        """
        error = self.validate_step()
        if error:
            return error
        if self.step in (STEP_SHIPPING, STEP_PAYMENT):
            self.step += 1
        return None

    def back(self) -> None:
        if self.step == STEP_CONFIRMATION:
            return
        self.step = max(STEP_SHIPPING, self.step - 1)

    def complete(self, order_number: str) -> None:
        self.order_number = order_number
        self.step = STEP_CONFIRMATION

    # Payment request pieces

    def billing_address(self) -> dict:
        return dict(self.shipping) if self.billing_same else dict(self.billing)

    def card_details(self) -> dict:
        return {field: (self.payment.get(field) or '').strip() for field in PAYMENT_FIELDS}

    @property
    def card_last4(self) -> str:
        return self._card_last4

    # Session serialization

    def to_dict(self) -> dict:
        """Session form of the draft. Card number, expiry and CVV are left out."""
        return {
            'step': self.step,
            'shipping': dict(self.shipping),
            'billing': dict(self.billing),
            'payment': {field: value for field, value in self.payment.items()
                        if field not in CARD_SECRET_FIELDS},
            'card_last4': self.card_last4,
            'shipping_method': self.shipping_method,
            'billing_same': self.billing_same,
            'idempotency_key': self.idempotency_key,
            'order_number': self.order_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CheckoutDraft':
        return cls(
            step=int(data.get('step', STEP_SHIPPING)),
            shipping=data.get('shipping'),
            billing=data.get('billing'),
            payment={field: value for field, value in (data.get('payment') or {}).items()
                     if field not in CARD_SECRET_FIELDS},
            card_last4=data.get('card_last4', ''),
            shipping_method=data.get('shipping_method', 'standard'),
            billing_same=bool(data.get('billing_same', True)),
            idempotency_key=data.get('idempotency_key'),
            order_number=data.get('order_number'),
        )


def get_draft(prefill: Optional[dict] = None) -> CheckoutDraft:
    """Load the draft from the session, starting a new one if needed."""
    data = session.get(DRAFT_SESSION_KEY)
    if data:
        return CheckoutDraft.from_dict(data)
    draft = CheckoutDraft()
    if prefill:
        draft.update_shipping(**prefill)
    return draft


def save_draft(draft: CheckoutDraft) -> None:
    session[DRAFT_SESSION_KEY] = draft.to_dict()
    session.modified = True


def discard_draft() -> None:
    session.pop(DRAFT_SESSION_KEY, None)


def place_order(db_session, draft: CheckoutDraft, cart, user, config, gateway=None):
    """
    Place the order for a draft on the review step.

    On success the cart is emptied, the draft moves to confirmation and a
    confirmation email is sent. Errors propagate with the draft untouched
    so the customer stays on review.
    """
    if draft.step != STEP_REVIEW:
        raise BusinessLogicError('Please complete the previous checkout steps first')
    if not draft.has_card():
        raise BusinessLogicError(PAYMENT_REQUIRED_MESSAGE)

    order = order_service.place_order(
        db_session,
        draft,
        cart,
        gateway or get_payment_gateway(),
        customer_email=user.email,
        user_id=user.id,
        currency=config.get('STORE_CURRENCY', 'GBP'),
        prefix=config.get('ORDER_NUMBER_PREFIX', 'LUM'),
        shipping_options=shipping_options(config),
    )

    clear_cart()
    draft.complete(order.order_number)
    discard_draft()
    session[LAST_ORDER_SESSION_KEY] = order.order_number

    if not send_order_confirmation(order):
        logger.warning(f"[CHECKOUT] Confirmation email for {order.order_number} not sent")
    return order
