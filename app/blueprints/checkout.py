"""
Checkout blueprint.

Four linear steps over a session-held draft: shipping, payment, review and
confirmation. The draft's step is authoritative; each POST acts on it.
Card details travel only in form posts: the payment step renders review
directly with them in the place-order form, and a reloaded review asks again.
"""
from flask import Blueprint, render_template, request, redirect, url_for, flash, session, current_app, g, jsonify, Response
from typing import Union
from app.database import get_session
from app.blueprints.metrics import record_checkout_result
from app.exceptions import StoreError
from app.forms.checkout_forms import ShippingAddressForm, PaymentForm, CardForm
from app.middleware import require_login
from app.models import Order
from app.services import checkout_service
from app.services.checkout_service import (
    STEP_SHIPPING, STEP_PAYMENT, STEP_REVIEW, STEP_NAMES,
    get_draft, save_draft, discard_draft, LAST_ORDER_SESSION_KEY
)
from app.services.cart_service import get_cart
from app.services.pricing_service import shipping_options, order_totals
import logging

logger = logging.getLogger(__name__)

checkout_bp = Blueprint('checkout', __name__, url_prefix='/checkout')


def _prefill() -> dict:
    return {'first_name': g.user.first_name, 'last_name': g.user.last_name}


def _render_step(draft, cart, error: str = None, status: int = 200, carry_card: dict = None):
    """
    Render the current step. ``carry_card`` holds the card just posted on the
    payment step so the review form can send it with "place order".
    """
    options = shipping_options(current_app.config)
    totals = order_totals(cart.subtotal, draft.shipping_method, options)

    shipping_form = ShippingAddressForm(formdata=None, data={
        **draft.shipping, 'shipping_method': draft.shipping_method
    })
    shipping_form.shipping_method.choices = [
        (code, f"{option.name} ({option.delivery_estimate})") for code, option in options.items()
    ]
    payment_form = PaymentForm(formdata=None, data={
        'card_name': draft.payment['card_name'],
        'billing_same': draft.billing_same,
        **{f'billing_{name}': draft.billing.get(name, '') for name in PaymentForm.BILLING_FIELDS},
    })
    card_form = CardForm(formdata=None, data={'card_name': draft.payment['card_name']})

    return render_template(
        'checkout/checkout.html',
        draft=draft,
        step_names=STEP_NAMES,
        lines=cart.lines(),
        totals=totals,
        shipping_option=options.get(draft.shipping_method),
        shipping_options=options,
        shipping_form=shipping_form,
        payment_form=payment_form,
        card_form=card_form,
        carry_card=carry_card,
        error=error,
    ), status


def _checkout_state():
    """Cart and draft, or a redirect when there is nothing to check out."""
    cart = get_cart()
    if cart.is_empty:
        flash('Your bag is empty.', 'info')
        return cart, None, redirect(url_for('shop.cart'))
    return cart, get_draft(prefill=_prefill()), None


@checkout_bp.route('/', methods=['GET'])
@require_login
def index() -> Union[str, Response]:
    cart, draft, redirect_response = _checkout_state()
    if redirect_response:
        return redirect_response
    save_draft(draft)
    return _render_step(draft, cart)


@checkout_bp.route('/shipping', methods=['POST'])
@require_login
def submit_shipping() -> Union[str, Response]:
    cart, draft, redirect_response = _checkout_state()
    if redirect_response:
        return redirect_response
    if draft.step != STEP_SHIPPING:
        return redirect(url_for('checkout.index'))

    form = ShippingAddressForm()
    if not form.validate():
        return _render_step(draft, cart, error='Please check the highlighted fields', status=400)

    draft.update_shipping(**form.address_data())
    draft.set_shipping_method(form.shipping_method.data or 'standard', shipping_options(current_app.config))
    error = draft.advance()
    save_draft(draft)
    if error:
        return _render_step(draft, cart, error=error, status=400)
    return redirect(url_for('checkout.index'))


@checkout_bp.route('/payment', methods=['POST'])
@require_login
def submit_payment() -> Union[str, Response]:
    cart, draft, redirect_response = _checkout_state()
    if redirect_response:
        return redirect_response
    if draft.step != STEP_PAYMENT:
        return redirect(url_for('checkout.index'))

    form = PaymentForm()
    if not form.validate():
        return _render_step(draft, cart, error='Please check the highlighted fields', status=400)

    draft.update_payment(**form.payment_data())
    draft.set_billing_same(form.billing_same.data)
    if not draft.billing_same:
        draft.update_billing(**form.billing_data())
    error = draft.advance()
    save_draft(draft)
    if error:
        return _render_step(draft, cart, error=error, status=400)
    return _render_step(draft, cart, carry_card=draft.card_details())


@checkout_bp.route('/billing-same', methods=['POST'])
@require_login
def toggle_billing_same() -> Union[Response, tuple]:
    """Toggle the billing flag; turning it on copies the shipping address."""
    draft = get_draft(prefill=_prefill())
    draft.set_billing_same(request.form.get('billing_same') in ('on', 'true', '1', 'y'))
    save_draft(draft)
    return jsonify({'billing_same': draft.billing_same, 'billing': draft.billing})


@checkout_bp.route('/back', methods=['POST'])
@require_login
def back() -> Response:
    draft = get_draft(prefill=_prefill())
    draft.back()
    save_draft(draft)
    return redirect(url_for('checkout.index'))


@checkout_bp.route('/place-order', methods=['POST'])
@require_login
def place_order() -> Union[str, Response]:
    """Charge and persist; failures keep the customer on review with the message."""
    cart, draft, redirect_response = _checkout_state()
    if redirect_response:
        return redirect_response
    if draft.step != STEP_REVIEW:
        return redirect(url_for('checkout.index'))

    form = CardForm()
    if form.validate():
        draft.update_payment(**{name: value for name, value in form.payment_data().items() if value})

    try:
        order = checkout_service.place_order(get_session(), draft, cart, g.user, current_app.config)
    except StoreError as e:
        logger.info(f"[CHECKOUT] Order placement failed for {g.user.email}: {e.message}")
        record_checkout_result(error=e)
        save_draft(draft)
        return _render_step(draft, cart, error=e.message, status=e.status_code)

    record_checkout_result(order=order)
    flash(f'Thank you! Your order {order.order_number} has been placed.', 'success')
    return redirect(url_for('checkout.confirmation'))


@checkout_bp.route('/confirmation')
@require_login
def confirmation() -> Union[str, Response]:
    order_number = session.get(LAST_ORDER_SESSION_KEY)
    if not order_number:
        return redirect(url_for('shop.catalog'))
    order = get_session().query(Order).filter_by(order_number=order_number, user_id=g.user.id).first()
    if not order:
        return redirect(url_for('shop.catalog'))
    return render_template('checkout/confirmation.html', order=order, step_names=STEP_NAMES)


@checkout_bp.route('/cancel', methods=['POST'])
@require_login
def cancel() -> Response:
    discard_draft()
    return redirect(url_for('shop.cart'))


@checkout_bp.after_request
def no_store(response: Response) -> Response:
    response.headers['Cache-Control'] = 'no-store'
    return response
