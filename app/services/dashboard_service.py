"""
Dashboard service.
Provides aggregated metrics for the admin dashboard view.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy import func
from app.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, Product, ProductVariant, UserProfile, UserRole
)

PERIOD_DAYS = 30


def _growth(current, previous) -> float:
    """Percentage change; 0 when there is no previous period."""
    if not previous:
        return 0.0
    return float((Decimal(str(current)) - Decimal(str(previous))) * 100 / Decimal(str(previous)))


def _period_totals(session, start: datetime, end: datetime):
    row = session.query(
        func.coalesce(func.sum(Order.total_amount), 0).label('sales'),
        func.count(Order.id).label('orders'),
    ).filter(
        Order.created_at >= start,
        Order.created_at < end,
        Order.status != OrderStatus.CANCELLED.value,
    ).first()
    return Decimal(str(row.sales or 0)), int(row.orders or 0)


def get_dashboard_stats(session, now: datetime = None) -> dict:
    """
    Headline numbers comparing the last 30 days with the 30 days before.

    Returns:
        dict with keys total_sales, total_orders, sales_growth, orders_growth,
        pending_orders_count, total_customers, total_products, low_stock_count
    """
    now = now or datetime.now(timezone.utc)
    period_start = now - timedelta(days=PERIOD_DAYS)
    previous_start = now - timedelta(days=PERIOD_DAYS * 2)

    total_sales, total_orders = _period_totals(session, period_start, now + timedelta(seconds=1))
    previous_sales, previous_orders = _period_totals(session, previous_start, period_start)

    pending = session.query(func.count(Order.id)).filter(
        Order.status == OrderStatus.PENDING.value
    ).scalar() or 0

    customers = session.query(func.count(UserProfile.id)).filter(
        UserProfile.role == UserRole.CUSTOMER.value
    ).scalar() or 0

    products = session.query(func.count(Product.id)).filter(
        Product.is_active.is_(True)
    ).scalar() or 0

    low_stock = session.query(func.count(ProductVariant.id)).filter(
        ProductVariant.is_active.is_(True),
        ProductVariant.stock_quantity <= ProductVariant.low_stock_threshold,
    ).scalar() or 0

    return {
        'total_sales': total_sales,
        'total_orders': total_orders,
        'sales_growth': _growth(total_sales, previous_sales),
        'orders_growth': _growth(total_orders, previous_orders),
        'pending_orders_count': pending,
        'total_customers': customers,
        'total_products': products,
        'low_stock_count': low_stock,
    }


def get_recent_orders(session, limit: int = 5) -> list:
    return (
        session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def get_low_stock_variants(session, limit: int = 5) -> list:
    return (
        session.query(ProductVariant)
        .filter(
            ProductVariant.is_active.is_(True),
            ProductVariant.stock_quantity <= ProductVariant.low_stock_threshold,
        )
        .order_by(ProductVariant.stock_quantity.asc(), ProductVariant.id.asc())
        .limit(limit)
        .all()
    )


def get_top_products(session, limit: int = 5) -> list:
    """Best sellers by units across non-cancelled orders."""
    rows = (
        session.query(
            OrderItem.product_name,
            func.sum(OrderItem.quantity).label('units'),
            func.sum(OrderItem.total_price).label('revenue'),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.status != OrderStatus.CANCELLED.value)
        .group_by(OrderItem.product_name)
        .order_by(func.sum(OrderItem.quantity).desc())
        .limit(limit)
        .all()
    )
    return [
        {'name': r.product_name, 'units': int(r.units or 0), 'revenue': Decimal(str(r.revenue or 0))}
        for r in rows
    ]


def get_customers(session, search: str = '') -> list:
    """Customers with order count and lifetime spend (paid orders only)."""
    orders_sub = (
        session.query(
            Order.user_id.label('user_id'),
            func.count(Order.id).label('order_count'),
            func.coalesce(func.sum(Order.total_amount), 0).label('total_spent'),
        )
        .filter(Order.payment_status == PaymentStatus.PAID.value)
        .group_by(Order.user_id)
        .subquery()
    )
    query = (
        session.query(UserProfile, orders_sub.c.order_count, orders_sub.c.total_spent)
        .outerjoin(orders_sub, orders_sub.c.user_id == UserProfile.id)
        .filter(UserProfile.role == UserRole.CUSTOMER.value)
    )
    if search:
        term = f"%{search[:100]}%"
        query = query.filter((UserProfile.email.ilike(term)) | (UserProfile.full_name.ilike(term)))
    return [
        {
            'profile': profile,
            'order_count': int(order_count or 0),
            'total_spent': Decimal(str(total_spent or 0)),
        }
        for profile, order_count, total_spent in query.order_by(UserProfile.created_at.desc(), UserProfile.id.desc()).all()
    ]
