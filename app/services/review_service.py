"""Customer product reviews: submission, listing and the rating summary."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError

from app.exceptions import BusinessLogicError, NotFoundError
from app.models import Order, OrderItem, PaymentStatus, ProductReview

logger = logging.getLogger(__name__)

REVIEW_SORTS = {
    'newest': (ProductReview.created_at.desc(), ProductReview.id.desc()),
    'oldest': (ProductReview.created_at.asc(), ProductReview.id.asc()),
    'highest': (ProductReview.rating.desc(), ProductReview.created_at.desc()),
    'lowest': (ProductReview.rating.asc(), ProductReview.created_at.desc()),
    'helpful': (ProductReview.helpful_count.desc(), ProductReview.created_at.desc()),
}
REVIEW_FILTERS = ('all', '5', '4', '3', '2', '1', 'verified')

# Payment states that count as a purchase for the verified badge
PURCHASED = (PaymentStatus.PAID.value, PaymentStatus.PARTIALLY_REFUNDED.value)


class RatingSummary(NamedTuple):
    average: Decimal
    total: int
    # (stars, count, percentage) from 5 stars down to 1
    distribution: list


def has_purchased(session, user_id: int, product_id: int) -> bool:
    return session.query(OrderItem.id).join(Order).filter(
        Order.user_id == user_id,
        Order.payment_status.in_(PURCHASED),
        OrderItem.product_id == product_id,
    ).first() is not None


def submit_review(session, product, user, rating, content: str, title: str = '',
                  variant_name: str = '') -> ProductReview:
    """
    Store a customer's review of a product.

    Raises:
        BusinessLogicError: rating outside 1-5, empty review, or a second
            review of the same product by the same customer
    """
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        rating = 0
    if not 1 <= rating <= 5:
        raise BusinessLogicError('Please choose a rating from 1 to 5 stars')

    content = (content or '').strip()
    if not content:
        raise BusinessLogicError('Please write a few words about the piece')

    if session.query(ProductReview.id).filter_by(product_id=product.id, user_id=user.id).first():
        raise BusinessLogicError('You have already reviewed this product')

    review = ProductReview(
        product_id=product.id,
        user_id=user.id,
        rating=rating,
        title=(title or '').strip() or None,
        content=content,
        variant_name=(variant_name or '').strip() or None,
        is_verified=has_purchased(session, user.id, product.id),
    )
    session.add(review)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError('You have already reviewed this product')

    logger.info(f"[REVIEW] {user.email} rated {product.slug} {rating}/5 (verified={review.is_verified})")
    return review


def list_reviews(session, product_id: int, sort: str = 'newest', rating_filter: str = 'all'):
    """Approved reviews of a product; unknown sort or filter values fall back to the defaults."""
    query = session.query(ProductReview).filter(
        ProductReview.product_id == product_id,
        ProductReview.is_approved.is_(True),
    )
    if rating_filter == 'verified':
        query = query.filter(ProductReview.is_verified.is_(True))
    elif rating_filter in REVIEW_FILTERS and rating_filter != 'all':
        query = query.filter(ProductReview.rating == int(rating_filter))
    return query.order_by(*REVIEW_SORTS.get(sort, REVIEW_SORTS['newest']))


def summarize(ratings) -> RatingSummary:
    """
    Average to one decimal place plus the per-star breakdown.

    Percentages are whole numbers of the total; an empty list averages 0.
    """
    ratings = list(ratings)
    total = len(ratings)
    if not total:
        return RatingSummary(Decimal('0.0'), 0, [(stars, 0, 0) for stars in range(5, 0, -1)])

    average = (Decimal(sum(ratings)) / total).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)
    distribution = []
    for stars in range(5, 0, -1):
        count = ratings.count(stars)
        percentage = int((Decimal(count) * 100 / total).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
        distribution.append((stars, count, percentage))
    return RatingSummary(average, total, distribution)


def product_summary(session, product_id: int) -> RatingSummary:
    rows = session.query(ProductReview.rating).filter(
        ProductReview.product_id == product_id,
        ProductReview.is_approved.is_(True),
    ).all()
    return summarize(row[0] for row in rows)


def mark_helpful(session, review_id: int) -> ProductReview:
    review = session.get(ProductReview, review_id)
    if review is None or not review.is_approved:
        raise NotFoundError('Review not found')
    review.helpful_count = (review.helpful_count or 0) + 1
    session.commit()
    return review
