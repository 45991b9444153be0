"""
Integration tests for the checkout wizard end to end.
"""

from app.models import Order, StockTransaction

ADDRESS = {
    'first_name': 'Jane',
    'last_name': 'Smith',
    'address1': '1 High Street',
    'city': 'Bath',
    'state': 'Somerset',
    'postal_code': 'BA1 1AA',
    'country': 'GB',
    'phone': '07700 900123',
    'shipping_method': 'standard',
}

CARD_FIELDS = {
    'card_number': '4242 4242 4242 4242',
    'card_name': 'Jane Smith',
    'expiry_date': '12/29',
    'cvv': '987',
}

CARD = {**CARD_FIELDS, 'billing_same': 'y'}

DECLINED_CARD = {**CARD_FIELDS, 'card_number': '4000 0000 0000 0000'}


def _draft(client):
    with client.session_transaction() as sess:
        return sess.get('checkout_draft')


def _cookie_session(app, client):
    """Decode the signed session cookie the browser holds."""
    cookie = client.get_cookie('session')
    if cookie is None:
        return {}
    return app.session_interface.get_signing_serializer(app).loads(cookie.value)


def _to_review(client, variant, quantity=2, card=None):
    client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': quantity})
    assert client.get('/checkout/').status_code == 200
    assert client.post('/checkout/shipping', data=ADDRESS).status_code == 302
    response = client.post('/checkout/payment', data=card or CARD)
    assert response.status_code == 200
    return response


class TestCheckoutAccess:

    def test_anonymous_redirected_to_login(self, client):
        response = client.get('/checkout/', follow_redirects=False)
        assert response.status_code == 302
        assert '/account/login' in response.location

    def test_empty_bag_redirects_to_cart(self, customer_client):
        response = customer_client.get('/checkout/', follow_redirects=False)
        assert response.status_code == 302
        assert '/shop/cart' in response.location


class TestCheckoutSteps:

    def test_missing_shipping_fields_stay_on_shipping(self, customer_client, variant):
        customer_client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        customer_client.get('/checkout/')

        response = customer_client.post('/checkout/shipping', data={**ADDRESS, 'city': ''})

        assert response.status_code == 400
        assert b'Please fill in all required fields' in response.data
        assert _draft(customer_client)['step'] == 1

    def test_shipping_then_payment_reaches_review(self, customer_client, variant):
        _to_review(customer_client, variant)

        draft = _draft(customer_client)
        assert draft['step'] == 3
        assert draft['billing_same'] is True
        assert draft['billing']['city'] == 'Bath'

    def test_back_returns_to_payment(self, customer_client, variant):
        _to_review(customer_client, variant)
        customer_client.post('/checkout/back')
        assert _draft(customer_client)['step'] == 2

    def test_billing_toggle(self, customer_client, variant):
        customer_client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        customer_client.get('/checkout/')
        customer_client.post('/checkout/shipping', data=ADDRESS)

        data = customer_client.post('/checkout/billing-same', data={'billing_same': 'true'}).get_json()

        assert data['billing_same'] is True
        assert data['billing']['postal_code'] == 'BA1 1AA'

    def test_cancel_discards_draft(self, customer_client, variant):
        _to_review(customer_client, variant)
        customer_client.post('/checkout/cancel')
        assert _draft(customer_client) is None


class TestPlaceOrder:

    def test_successful_order(self, customer_client, session, customer, variant):
        _to_review(customer_client, variant, quantity=2)

        response = customer_client.post('/checkout/place-order', data=CARD_FIELDS, follow_redirects=False)

        assert response.status_code == 302
        assert '/checkout/confirmation' in response.location

        order = session.query(Order).filter_by(user_id=customer.id).one()
        assert order.status == 'processing'
        assert order.payment_status == 'paid'
        assert str(order.total_amount) == '52.99'
        assert order.order_number.startswith('LUM-')
        assert order.transaction_id.startswith('txn_')

        session.refresh(variant)
        assert variant.stock_quantity == 8
        assert session.query(StockTransaction).filter_by(variant_id=variant.id, transaction_type='sale').count() == 1

        with customer_client.session_transaction() as sess:
            assert sess['last_order_number'] == order.order_number
            assert not (sess.get('cart') or {}).get('items')
            assert 'checkout_draft' not in sess

        confirmation = customer_client.get('/checkout/confirmation')
        assert confirmation.status_code == 200
        assert order.order_number.encode() in confirmation.data

    def test_declined_card_stays_on_review(self, customer_client, session, variant):
        _to_review(customer_client, variant, card={**DECLINED_CARD, 'billing_same': 'y'})

        response = customer_client.post('/checkout/place-order', data=DECLINED_CARD)

        assert response.status_code == 402
        assert b'Card declined' in response.data
        assert session.query(Order).count() == 0
        session.refresh(variant)
        assert variant.stock_quantity == 10
        assert _draft(customer_client)['step'] == 3

    def test_order_history_lists_order(self, customer_client, variant):
        _to_review(customer_client, variant, quantity=1)
        customer_client.post('/checkout/place-order', data=CARD_FIELDS)

        response = customer_client.get('/account/orders')
        assert response.status_code == 200
        assert b'LUM-' in response.data


class TestCardDetails:

    def _assert_no_card_data(self, app, client):
        data = _cookie_session(app, client)
        dumped = repr(data)
        assert '4242 4242 4242 4242' not in dumped
        assert '4242424242424242' not in dumped
        assert '12/29' not in dumped
        payment = (data.get('checkout_draft') or {}).get('payment', {})
        assert 'card_number' not in payment
        assert 'cvv' not in payment
        assert 'expiry_date' not in payment

    def test_card_never_stored_in_session_cookie(self, app, customer_client, variant):
        customer_client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        customer_client.get('/checkout/')
        self._assert_no_card_data(app, customer_client)

        customer_client.post('/checkout/shipping', data=ADDRESS)
        self._assert_no_card_data(app, customer_client)

        customer_client.post('/checkout/payment', data=CARD)
        self._assert_no_card_data(app, customer_client)
        assert _cookie_session(app, customer_client)['checkout_draft']['card_last4'] == '4242'

        customer_client.post('/checkout/place-order', data=CARD_FIELDS)
        self._assert_no_card_data(app, customer_client)

    def test_declined_card_not_kept_in_session(self, app, customer_client, variant):
        _to_review(customer_client, variant, card={**DECLINED_CARD, 'billing_same': 'y'})
        customer_client.post('/checkout/place-order', data=DECLINED_CARD)

        data = _cookie_session(app, customer_client)
        assert '4000 0000 0000 0000' not in repr(data)
        assert data['checkout_draft']['step'] == 3

    def test_review_form_carries_posted_card(self, customer_client, variant):
        response = _to_review(customer_client, variant)

        assert b'type="hidden" name="card_number"' in response.data
        assert response.headers['Cache-Control'] == 'no-store'

    def test_reloaded_review_asks_for_card_again(self, customer_client, session, variant):
        _to_review(customer_client, variant)

        review = customer_client.get('/checkout/')
        assert b'Enter your card details' in review.data
        assert b'4242 4242 4242 4242' not in review.data

        response = customer_client.post('/checkout/place-order')
        assert response.status_code == 400
        assert b'Please fill in all payment details' in response.data
        assert session.query(Order).count() == 0
