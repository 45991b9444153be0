"""
Admin back-office blueprint: dashboard, orders, returns, inventory and customers.
All routes require an admin profile.
"""
from flask import Blueprint, render_template, request, redirect, url_for, flash, abort, Response
from typing import Union
from app.database import get_session
from app.exceptions import BusinessLogicError, NotFoundError
from app.forms.admin_forms import OrderStatusForm, ReturnStatusForm, StockAdjustmentForm
from app.middleware import require_admin
from app.models import Order, ReturnRequest, ProductVariant
from app.services import dashboard_service, order_service, inventory_service
from app.services.cache_service import invalidate_catalog_cache
from app.utils.status_badges import ORDER_STATUS, RETURN_STATUS
import logging

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

PER_PAGE = 25


def _paginate(query, page: int):
    """Slice a query for one page; returns (items, total, pages)."""
    total = query.count()
    pages = max(1, (total + PER_PAGE - 1) // PER_PAGE)
    page = min(max(page, 1), pages)
    return query.offset((page - 1) * PER_PAGE).limit(PER_PAGE).all(), total, pages


@admin_bp.route('/')
@require_admin
def dashboard() -> str:
    session = get_session()
    return render_template(
        'admin/dashboard.html',
        stats=dashboard_service.get_dashboard_stats(session),
        recent_orders=dashboard_service.get_recent_orders(session),
        low_stock=dashboard_service.get_low_stock_variants(session),
        top_products=dashboard_service.get_top_products(session),
    )


# =====================================================
# ORDERS
# =====================================================

@admin_bp.route('/orders')
@require_admin
def orders() -> str:
    session = get_session()
    search = request.args.get('q', '').strip()
    status = request.args.get('status', '').strip()
    page = request.args.get('page', 1, type=int)

    items, total, pages = _paginate(order_service.list_orders(session, search, status), page)
    return render_template(
        'admin/orders/list.html',
        orders=items,
        total=total,
        page=page,
        pages=pages,
        search=search,
        status=status,
        statuses=ORDER_STATUS,
    )


@admin_bp.route('/orders/<int:order_id>')
@require_admin
def order_detail(order_id: int) -> str:
    order = get_session().get(Order, order_id)
    if not order:
        abort(404)
    form = OrderStatusForm(data={'status': order.status, 'payment_status': order.payment_status})
    return render_template('admin/orders/detail.html', order=order, form=form)


@admin_bp.route('/orders/<int:order_id>/status', methods=['POST'])
@require_admin
def order_update_status(order_id: int) -> Response:
    form = OrderStatusForm()
    if not form.validate():
        flash('Invalid order status.', 'danger')
        return redirect(url_for('admin.order_detail', order_id=order_id))

    order = order_service.update_order_status(get_session(), order_id, form.status.data, form.payment_status.data)
    flash(f'Order {order.order_number} updated.', 'success')
    return redirect(url_for('admin.order_detail', order_id=order_id))


@admin_bp.route('/orders/<int:order_id>/returns', methods=['POST'])
@require_admin
def order_create_return(order_id: int) -> Response:
    """Open a return for selected order lines (qty_<item id> fields)."""
    order = get_session().get(Order, order_id)
    if not order:
        raise NotFoundError('Order not found')

    reason = request.form.get('reason', '').strip()
    if not reason:
        raise BusinessLogicError('A reason is required to open a return')

    items = []
    for item in order.items:
        quantity = request.form.get(f'qty_{item.id}', 0, type=int)
        if quantity > 0:
            items.append({'order_item_id': item.id, 'quantity': quantity})

    return_request = order_service.create_return(get_session(), order_id, reason, items)
    flash(f'Return {return_request.return_number} opened.', 'success')
    return redirect(url_for('admin.return_detail', return_id=return_request.id))


# =====================================================
# RETURNS
# =====================================================

@admin_bp.route('/returns')
@require_admin
def returns() -> str:
    session = get_session()
    search = request.args.get('q', '').strip()
    status = request.args.get('status', '').strip()
    page = request.args.get('page', 1, type=int)

    items, total, pages = _paginate(order_service.list_returns(session, search, status), page)
    return render_template(
        'admin/returns/list.html',
        returns=items,
        total=total,
        page=page,
        pages=pages,
        search=search,
        status=status,
        statuses=RETURN_STATUS,
    )


@admin_bp.route('/returns/<int:return_id>')
@require_admin
def return_detail(return_id: int) -> str:
    return_request = get_session().get(ReturnRequest, return_id)
    if not return_request:
        abort(404)
    form = ReturnStatusForm(data={'status': return_request.status, 'notes': return_request.notes})
    return render_template('admin/returns/detail.html', return_request=return_request, form=form)


@admin_bp.route('/returns/<int:return_id>/status', methods=['POST'])
@require_admin
def return_update_status(return_id: int) -> Response:
    form = ReturnStatusForm()
    if not form.validate():
        flash('Invalid return status.', 'danger')
        return redirect(url_for('admin.return_detail', return_id=return_id))

    return_request = order_service.update_return_status(
        get_session(), return_id, form.status.data, (form.notes.data or '').strip() or None
    )
    invalidate_catalog_cache()
    flash(f'Return {return_request.return_number} updated.', 'success')
    return redirect(url_for('admin.return_detail', return_id=return_id))


# =====================================================
# INVENTORY
# =====================================================

@admin_bp.route('/inventory')
@require_admin
def inventory() -> str:
    search = request.args.get('q', '').strip()
    low_stock_only = request.args.get('low_stock') == '1'
    variants = inventory_service.list_inventory(get_session(), search, low_stock_only)
    return render_template(
        'admin/inventory.html',
        variants=variants,
        search=search,
        low_stock_only=low_stock_only,
        form=StockAdjustmentForm(),
    )


@admin_bp.route('/inventory/<int:variant_id>/adjust', methods=['POST'])
@require_admin
def inventory_adjust(variant_id: int) -> Response:
    form = StockAdjustmentForm()
    if not form.validate():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        return redirect(url_for('admin.inventory'))

    session = get_session()
    if not session.get(ProductVariant, variant_id):
        raise NotFoundError('Variant not found')

    inventory_service.adjust_stock(
        session, variant_id, form.quantity_change.data, form.transaction_type.data,
        (form.notes.data or '').strip() or None
    )
    invalidate_catalog_cache()
    flash('Stock updated.', 'success')
    return redirect(url_for('admin.inventory'))


# =====================================================
# CUSTOMERS
# =====================================================

@admin_bp.route('/customers')
@require_admin
def customers() -> str:
    search = request.args.get('q', '').strip()
    rows = dashboard_service.get_customers(get_session(), search)
    return render_template('admin/customers.html', customers=rows, search=search)
