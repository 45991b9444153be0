"""
Checkout step forms.

Required-field rules live in the checkout draft so every step reports the
same messages; these forms only bound lengths and parse the POST.
"""
from flask_wtf import FlaskForm
from wtforms import BooleanField, RadioField, SelectField, StringField
from wtforms.validators import Length, Optional

from app.services.checkout_service import COUNTRIES


class ShippingAddressForm(FlaskForm):
    """Step 1: delivery address and shipping method."""

    first_name = StringField('First name', validators=[Optional(), Length(max=100)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=100)])
    company = StringField('Company', validators=[Optional(), Length(max=150)])
    address1 = StringField('Address line 1', validators=[Optional(), Length(max=200)])
    address2 = StringField('Address line 2', validators=[Optional(), Length(max=200)])
    city = StringField('City', validators=[Optional(), Length(max=100)])
    state = StringField('County / State', validators=[Optional(), Length(max=100)])
    postal_code = StringField('Postcode', validators=[Optional(), Length(max=20)])
    country = SelectField('Country', choices=COUNTRIES, default='GB')
    phone = StringField('Phone', validators=[Optional(), Length(max=40)])
    shipping_method = RadioField('Shipping method', choices=[('standard', 'Standard'), ('express', 'Express')],
                                 default='standard')

    ADDRESS_FIELDS = ('first_name', 'last_name', 'company', 'address1', 'address2',
                      'city', 'state', 'postal_code', 'country', 'phone')

    def address_data(self) -> dict:
        return {name: (getattr(self, name).data or '').strip() for name in self.ADDRESS_FIELDS}


class CardForm(FlaskForm):
    """Card details; posted on the payment step and again when placing the order."""

    card_number = StringField('Card number', validators=[Optional(), Length(max=23)],
                              render_kw={'autocomplete': 'cc-number', 'placeholder': '1234 5678 9012 3456'})
    card_name = StringField('Name on card', validators=[Optional(), Length(max=120)],
                            render_kw={'autocomplete': 'cc-name'})
    expiry_date = StringField('Expiry (MM/YY)', validators=[Optional(), Length(max=7)],
                              render_kw={'autocomplete': 'cc-exp', 'placeholder': 'MM/YY'})
    cvv = StringField('CVV', validators=[Optional(), Length(max=4)],
                      render_kw={'autocomplete': 'cc-csc'})

    PAYMENT_FIELDS = ('card_number', 'card_name', 'expiry_date', 'cvv')

    def payment_data(self) -> dict:
        return {name: (getattr(self, name).data or '').strip() for name in self.PAYMENT_FIELDS}


class PaymentForm(CardForm):
    """Step 2: card details and optional separate billing address."""

    billing_same = BooleanField('Billing address same as shipping', default=True)

    billing_first_name = StringField('First name', validators=[Optional(), Length(max=100)])
    billing_last_name = StringField('Last name', validators=[Optional(), Length(max=100)])
    billing_company = StringField('Company', validators=[Optional(), Length(max=150)])
    billing_address1 = StringField('Address line 1', validators=[Optional(), Length(max=200)])
    billing_address2 = StringField('Address line 2', validators=[Optional(), Length(max=200)])
    billing_city = StringField('City', validators=[Optional(), Length(max=100)])
    billing_state = StringField('County / State', validators=[Optional(), Length(max=100)])
    billing_postal_code = StringField('Postcode', validators=[Optional(), Length(max=20)])
    billing_country = SelectField('Country', choices=COUNTRIES, default='GB')

    BILLING_FIELDS = ('first_name', 'last_name', 'company', 'address1', 'address2',
                      'city', 'state', 'postal_code', 'country')

    def billing_data(self) -> dict:
        return {name: (getattr(self, f'billing_{name}').data or '').strip() for name in self.BILLING_FIELDS}
