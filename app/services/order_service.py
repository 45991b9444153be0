"""
Order service with transactional logic.
Handles order placement (charge + stock + persistence), numbering and status updates.
"""
import json
import logging
import secrets
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from app.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, ProductVariant,
    ReturnItem, ReturnRequest, ReturnStatus, StockTransactionType
)
from app.exceptions import BusinessLogicError, NotFoundError, InsufficientStockError, PaymentError
from app.services.inventory_service import record_stock_change
from app.services.payment_service import PaymentRequest
from app.services.pricing_service import order_totals

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ('first_name', 'last_name', 'company', 'address1', 'address2',
                  'city', 'state', 'postal_code', 'country')


def generate_order_number(session, prefix: str = 'LUM') -> str:
    """Random six-digit order number, e.g. LUM-482913, unique in the table."""
    while True:
        candidate = f"{prefix}-{100000 + secrets.randbelow(900000)}"
        if not session.query(Order.id).filter(Order.order_number == candidate).first():
            return candidate


def generate_return_number(session) -> str:
    """Sequential return number: RET-000001, RET-000002, ..."""
    count = session.query(ReturnRequest.id).count()
    while True:
        count += 1
        candidate = f"RET-{count:06d}"
        if not session.query(ReturnRequest.id).filter(ReturnRequest.return_number == candidate).first():
            return candidate


def _lock_variants(session, variant_ids: list) -> dict:
    variants = (
        session.query(ProductVariant)
        .filter(ProductVariant.id.in_(variant_ids))
        .with_for_update()
        .all()
    )
    return {v.id: v for v in variants}


def _build_order(session, draft, cart, customer_email: str, user_id: Optional[int],
                 currency: str, prefix: str, shipping_options: Optional[dict]) -> Order:
    """Create the Order and its items in the session after validating stock."""
    lines = cart.lines()
    variant_ids = [line['variant_id'] for line in lines]
    variants = _lock_variants(session, variant_ids)

    requested = {}
    for line in lines:
        requested[line['variant_id']] = requested.get(line['variant_id'], 0) + line['quantity']

    for line in lines:
        variant = variants.get(line['variant_id'])
        if not variant or not variant.is_active or not variant.product.is_active:
            raise NotFoundError(f'"{line["name"]}" is no longer available')
        if (variant.stock_quantity or 0) < requested[variant.id]:
            raise InsufficientStockError(line['name'], requested[variant.id], variant.stock_quantity or 0)

    totals = order_totals(cart.subtotal, draft.shipping_method, shipping_options)
    shipping = draft.shipping
    billing = draft.billing_address()

    order = Order(
        order_number=generate_order_number(session, prefix),
        user_id=user_id,
        customer_email=customer_email,
        customer_phone=shipping.get('phone'),
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        currency=currency,
        subtotal=totals['subtotal'],
        shipping_cost=totals['shipping'],
        tax_amount=Decimal('0.00'),
        total_amount=totals['total'],
        shipping_method=draft.shipping_method,
        idempotency_key=draft.idempotency_key,
    )
    for field in ADDRESS_FIELDS:
        setattr(order, f'shipping_{field}', shipping.get(field) or None)
        setattr(order, f'billing_{field}', billing.get(field) or None)
    order.shipping_country = shipping.get('country') or 'GB'

    for line in lines:
        variant = variants[line['variant_id']]
        order.items.append(OrderItem(
            product_id=variant.product_id,
            variant_id=variant.id,
            product_name=line['name'],
            variant_name=line.get('variant_name') or variant.name,
            quantity=line['quantity'],
            unit_price=line['price'],
            total_price=line['line_total'].quantize(Decimal('0.01')),
            attributes=json.dumps(line.get('attributes') or {}),
        ))

    session.add(order)
    session.flush()
    return order


def place_order(session, draft, cart, gateway, customer_email: str, user_id: Optional[int] = None,
                currency: str = 'GBP', prefix: str = 'LUM', shipping_options: Optional[dict] = None) -> Order:
    """
    Charge the customer and persist the order in a single transaction.

    A draft whose idempotency key already produced an order returns that
    order without charging again. A declined payment rolls everything back.
    If the commit fails after a successful charge, the charge is refunded.

    Raises:
        BusinessLogicError: empty cart or persistence failure
        NotFoundError / InsufficientStockError: cart no longer purchasable
        PaymentError: gateway declined the charge
    """
    existing = session.query(Order).filter_by(idempotency_key=draft.idempotency_key).first()
    if existing:
        logger.info(f"[CHECKOUT] Duplicate submission for {existing.order_number}, returning existing order")
        return existing

    if cart.is_empty:
        raise BusinessLogicError('Your cart is empty')

    try:
        order = _build_order(session, draft, cart, customer_email, user_id, currency, prefix, shipping_options)

        result = gateway.process(PaymentRequest(
            amount=order.total_amount,
            currency=currency,
            card_details=draft.card_details(),
            billing_address=draft.billing_address(),
            reference=order.order_number,
        ))
        if not result.success:
            logger.info(f"[CHECKOUT] Payment declined for {order.order_number}: {result.error_message}")
            raise PaymentError(result.error_message)

        order.transaction_id = result.transaction_id
        order.payment_status = PaymentStatus.PAID.value
        order.status = OrderStatus.PROCESSING.value

        for item in order.items:
            record_stock_change(session, item.variant, -item.quantity,
                                StockTransactionType.SALE.value, reference=order.order_number)

    except (BusinessLogicError, NotFoundError, PaymentError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[CHECKOUT] Database error while building order: {e}")
        raise BusinessLogicError('We could not place your order. Please try again.', status_code=500)

    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[CHECKOUT] Commit failed after charge {result.transaction_id}: {e}")
        refund = gateway.refund(result.transaction_id)
        if not refund.success:
            logger.error(f"[CHECKOUT] Refund of {result.transaction_id} failed: {refund.error_message}")

        # A concurrent submission of the same draft may have won the race
        winner = session.query(Order).filter_by(idempotency_key=draft.idempotency_key).first()
        if winner:
            return winner
        raise BusinessLogicError('We could not save your order. Your payment has been refunded.', status_code=500)

    logger.info(f"[CHECKOUT] Order {order.order_number} placed: {order.total_amount} {currency} txn={order.transaction_id}")
    return order


def list_orders(session, search: str = '', status: str = ''):
    """Orders newest first, searchable by order number or email."""
    query = session.query(Order)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(or_(Order.order_number.ilike(term), Order.customer_email.ilike(term)))
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def update_order_status(session, order_id: int, status: str, payment_status: Optional[str] = None) -> Order:
    """Set fulfilment (and optionally payment) status."""
    valid = {s.value for s in OrderStatus}
    if status not in valid:
        raise BusinessLogicError(f'Invalid order status: {status}')
    if payment_status and payment_status not in {s.value for s in PaymentStatus}:
        raise BusinessLogicError(f'Invalid payment status: {payment_status}')

    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f'Order {order_id} not found')

    order.status = status
    if payment_status:
        order.payment_status = payment_status
    session.commit()
    logger.info(f"[ORDERS] {order.order_number} -> {status}")
    return order


def list_returns(session, search: str = '', status: str = ''):
    query = session.query(ReturnRequest).join(Order)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(or_(
            ReturnRequest.return_number.ilike(term),
            Order.order_number.ilike(term),
            Order.customer_email.ilike(term),
        ))
    if status:
        query = query.filter(ReturnRequest.status == status)
    return query.order_by(ReturnRequest.created_at.desc(), ReturnRequest.id.desc())


def create_return(session, order_id: int, reason: str, items: list) -> ReturnRequest:
    """
    Open a return request for some of an order's items.

    Args:
        items: list of {'order_item_id': int, 'quantity': int, 'reason': str}
    """
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f'Order {order_id} not found')
    if not reason or not reason.strip():
        raise BusinessLogicError('A reason is required')

    order_items = {item.id: item for item in order.items}
    return_request = ReturnRequest(
        return_number=generate_return_number(session),
        order_id=order.id,
        reason=reason.strip(),
        status=ReturnStatus.REQUESTED.value,
    )
    refund = Decimal('0.00')
    for entry in items:
        order_item = order_items.get(entry['order_item_id'])
        if not order_item:
            raise BusinessLogicError('Item does not belong to this order')
        quantity = int(entry.get('quantity') or 0)
        if quantity <= 0 or quantity > order_item.quantity:
            raise BusinessLogicError(f'Invalid return quantity for {order_item.product_name}')
        return_request.items.append(ReturnItem(
            order_item_id=order_item.id,
            product_name=order_item.product_name,
            quantity=quantity,
            reason=entry.get('reason'),
        ))
        refund += order_item.unit_price * quantity

    if not return_request.items:
        raise BusinessLogicError('Select at least one item to return')

    return_request.refund_amount = refund
    session.add(return_request)
    session.commit()
    logger.info(f"[RETURNS] {return_request.return_number} opened for {order.order_number}")
    return return_request


def update_return_status(session, return_id: int, status: str, notes: Optional[str] = None) -> ReturnRequest:
    """
    Move a return through its lifecycle. Processing a return puts the
    returned quantities back into stock.
    """
    if status not in {s.value for s in ReturnStatus}:
        raise BusinessLogicError(f'Invalid return status: {status}')

    return_request = session.get(ReturnRequest, return_id)
    if not return_request:
        raise NotFoundError(f'Return {return_id} not found')

    try:
        restock = (status == ReturnStatus.PROCESSED.value
                   and return_request.status != ReturnStatus.PROCESSED.value)
        return_request.status = status
        if notes is not None:
            return_request.notes = notes
        if restock:
            for item in return_request.items:
                if item.order_item and item.order_item.variant:
                    record_stock_change(session, item.order_item.variant, item.quantity,
                                        StockTransactionType.RETURN.value,
                                        reference=return_request.return_number)
        session.commit()
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    logger.info(f"[RETURNS] {return_request.return_number} -> {status}")
    return return_request
