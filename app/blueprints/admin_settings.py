"""Admin settings blueprint: shipping methods and tax rates."""
from flask import Blueprint, render_template, redirect, url_for, flash, abort, Response
from typing import Union
from app.database import get_session
from app.forms.admin_forms import ShippingMethodForm, TaxRateForm, populate
from app.middleware import require_admin
from app.models import ShippingMethod, TaxRate
import logging

logger = logging.getLogger(__name__)

admin_settings_bp = Blueprint('admin_settings', __name__, url_prefix='/admin/settings')


@admin_settings_bp.route('/')
@require_admin
def index() -> str:
    session = get_session()
    return render_template(
        'admin/settings/index.html',
        shipping_methods=session.query(ShippingMethod).order_by(ShippingMethod.sort_order, ShippingMethod.id).all(),
        tax_rates=session.query(TaxRate).order_by(TaxRate.country, TaxRate.name).all(),
    )


# =====================================================
# SHIPPING METHODS
# =====================================================

@admin_settings_bp.route('/shipping/new', methods=['GET', 'POST'])
@admin_settings_bp.route('/shipping/<int:method_id>/edit', methods=['GET', 'POST'])
@require_admin
def shipping_method_form(method_id: int = None) -> Union[str, Response]:
    session = get_session()
    method = None
    if method_id is not None:
        method = session.get(ShippingMethod, method_id)
        if not method:
            abort(404)

    form = ShippingMethodForm(obj=method)
    if form.validate_on_submit():
        if method is None:
            method = ShippingMethod()
            session.add(method)
        populate(form, method)
        session.commit()
        logger.info(f"[ADMIN] Shipping method saved: {method.name}")
        flash(f'Shipping method "{method.name}" saved.', 'success')
        return redirect(url_for('admin_settings.index'))

    return render_template('admin/settings/shipping_method_form.html', form=form, method=method)


@admin_settings_bp.route('/shipping/<int:method_id>/delete', methods=['POST'])
@require_admin
def shipping_method_delete(method_id: int) -> Response:
    session = get_session()
    method = session.get(ShippingMethod, method_id)
    if not method:
        abort(404)
    name = method.name
    session.delete(method)
    session.commit()
    flash(f'Shipping method "{name}" deleted.', 'success')
    return redirect(url_for('admin_settings.index'))


# =====================================================
# TAX RATES
# =====================================================

@admin_settings_bp.route('/tax/new', methods=['GET', 'POST'])
@admin_settings_bp.route('/tax/<int:rate_id>/edit', methods=['GET', 'POST'])
@require_admin
def tax_rate_form(rate_id: int = None) -> Union[str, Response]:
    session = get_session()
    tax_rate = None
    if rate_id is not None:
        tax_rate = session.get(TaxRate, rate_id)
        if not tax_rate:
            abort(404)

    form = TaxRateForm(obj=tax_rate)
    if form.validate_on_submit():
        if tax_rate is None:
            tax_rate = TaxRate()
            session.add(tax_rate)
        populate(form, tax_rate)
        session.commit()
        flash(f'Tax rate "{tax_rate.name}" saved.', 'success')
        return redirect(url_for('admin_settings.index'))

    return render_template('admin/settings/tax_rate_form.html', form=form, tax_rate=tax_rate)


@admin_settings_bp.route('/tax/<int:rate_id>/delete', methods=['POST'])
@require_admin
def tax_rate_delete(rate_id: int) -> Response:
    session = get_session()
    tax_rate = session.get(TaxRate, rate_id)
    if not tax_rate:
        abort(404)
    name = tax_rate.name
    session.delete(tax_rate)
    session.commit()
    flash(f'Tax rate "{name}" deleted.', 'success')
    return redirect(url_for('admin_settings.index'))
