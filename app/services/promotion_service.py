"""Promotion display rules and code generation for the admin screens."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from app.models import Promotion, PromotionType
from app.utils.formatters import money_gbp
from app.utils.status_badges import Badge
from app.utils.text import promotion_code

STATUS_INACTIVE = Badge('Inactive', 'gray')
STATUS_SCHEDULED = Badge('Scheduled', 'blue')
STATUS_EXPIRED = Badge('Expired', 'red')
STATUS_USED_UP = Badge('Used Up', 'orange')
STATUS_ACTIVE = Badge('Active', 'green')


def _plain_number(value) -> str:
    """20.00 -> '20', 12.50 -> '12.5'."""
    number = Decimal(str(value or 0))
    return format(number.normalize(), 'f')


def format_value(promotion) -> str:
    """Human-readable discount, e.g. '20%', '£5.00', 'Free Shipping', 'Buy 2 Get 1'."""
    kind = promotion.type
    if kind == PromotionType.PERCENTAGE.value:
        return f"{_plain_number(promotion.value)}%"
    if kind == PromotionType.FIXED_AMOUNT.value:
        return money_gbp(promotion.value)
    if kind == PromotionType.FREE_SHIPPING.value:
        return 'Free Shipping'
    if kind == PromotionType.BUY_X_GET_Y.value:
        return f"Buy {_plain_number(promotion.value)} Get 1"
    return str(promotion.value)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def status(promotion, now: Optional[datetime] = None) -> Badge:
    """
    Inactive, then Scheduled (before start), Expired (after end),
    Used Up (usage limit reached), otherwise Active.
    """
    now = _aware(now or datetime.now(timezone.utc))
    if not promotion.is_active:
        return STATUS_INACTIVE

    starts_at = _aware(promotion.starts_at)
    ends_at = _aware(promotion.ends_at)
    if starts_at and now < starts_at:
        return STATUS_SCHEDULED
    if ends_at and now > ends_at:
        return STATUS_EXPIRED
    if promotion.usage_limit and (promotion.current_usage_count or 0) >= promotion.usage_limit:
        return STATUS_USED_UP
    return STATUS_ACTIVE


def generate_code(name: str) -> str:
    return promotion_code(name)


def summary(promotions: list, now: Optional[datetime] = None) -> dict:
    """Counts per status label for the promotions header cards."""
    counts = {'total': len(promotions), 'Active': 0, 'Scheduled': 0, 'Expired': 0, 'Used Up': 0, 'Inactive': 0}
    for promotion in promotions:
        counts[status(promotion, now).label] += 1
    counts['total_usage'] = sum(p.current_usage_count or 0 for p in promotions)
    return counts


def list_promotions(session, search: str = '') -> list:
    query = session.query(Promotion)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter((Promotion.name.ilike(term)) | (Promotion.code.ilike(term)))
    return query.order_by(Promotion.created_at.desc(), Promotion.id.desc()).all()
