"""Shop blueprint: catalog browsing, product reviews and the session cart."""
from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app, abort, jsonify, g, Response
from flask import session as session_store
from sqlalchemy import or_
from sqlalchemy.orm import selectinload
from typing import Union
from app.database import get_session
from app.models import Product, ProductVariant, ProductReview, Category, Tag
from app.services.cache_service import get_cache, CATALOG
from app.services.cart_service import get_cart, save_cart, add_variant_to_cart, ATTRIBUTE_KEYS
from app.services.pricing_service import shipping_options, order_totals, amount_to_free_shipping
from app.exceptions import BusinessLogicError, NotFoundError
from app.forms.review_forms import ReviewForm
from app.middleware import require_login, safe_next_url
from app.services import review_service
import logging

logger = logging.getLogger(__name__)

shop_bp = Blueprint('shop', __name__, url_prefix='/shop')

REVIEWS_PER_PAGE = 10
HELPFUL_SESSION_KEY = 'helpful_reviews'

SORT_OPTIONS = {
    'newest': (Product.created_at.desc(), Product.id.desc()),
    'price_asc': (Product.base_price.asc(), Product.id.asc()),
    'price_desc': (Product.base_price.desc(), Product.id.desc()),
    'name': (Product.name.asc(), Product.id.asc()),
}


def _catalog_product_ids(session, category: Category = None, tag: str = '', search: str = '',
                         sort: str = 'newest') -> list:
    """Ids of active products matching the filters, in display order."""
    query = session.query(Product.id).filter(Product.is_active.is_(True))
    if category is not None:
        category_ids = [category.id] + [child.id for child in category.children if child.is_active]
        query = query.filter(Product.category_id.in_(category_ids))
    if tag:
        query = query.filter(Product.tags.any(Tag.slug == tag))
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(or_(Product.name.ilike(term), Product.description.ilike(term)))
    return [row[0] for row in query.order_by(*SORT_OPTIONS.get(sort, SORT_OPTIONS['newest'])).all()]


def _load_products(session, product_ids: list) -> list:
    if not product_ids:
        return []
    products = (
        session.query(Product)
        .options(selectinload(Product.variants))
        .filter(Product.id.in_(product_ids))
        .all()
    )
    by_id = {p.id: p for p in products}
    return [by_id[pid] for pid in product_ids if pid in by_id]


@shop_bp.route('/')
@shop_bp.route('/category/<slug>')
def catalog(slug: str = None) -> str:
    """Product listing, optionally within a category (and its children)."""
    session = get_session()
    search = request.args.get('q', '').strip()
    tag = request.args.get('tag', '').strip()
    sort = request.args.get('sort', 'newest')
    if sort not in SORT_OPTIONS:
        sort = 'newest'

    category = None
    if slug:
        category = session.query(Category).filter_by(slug=slug, is_active=True).first()
        if not category:
            abort(404)

    cache_key = f"list:{slug or 'all'}:{tag}:{sort}:{search.lower()}"
    product_ids = get_cache().memoize(
        CATALOG, cache_key, lambda: _catalog_product_ids(session, category, tag, search, sort)
    )

    return render_template(
        'shop/catalog.html',
        products=_load_products(session, product_ids),
        category=category,
        search=search,
        tag=tag,
        sort=sort,
        sort_options=SORT_OPTIONS,
    )


@shop_bp.route('/product/<slug>')
def product_detail(slug: str) -> str:
    session = get_session()
    product = session.query(Product).filter_by(slug=slug, is_active=True).first()
    if not product:
        abort(404)

    related = []
    if product.category_id:
        related = (
            session.query(Product)
            .filter(
                Product.category_id == product.category_id,
                Product.id != product.id,
                Product.is_active.is_(True),
            )
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(4)
            .all()
        )
    review_sort = request.args.get('review_sort', 'newest')
    review_filter = request.args.get('reviews', 'all')
    shown = max(1, min(request.args.get('show', REVIEWS_PER_PAGE, type=int) or REVIEWS_PER_PAGE, 100))
    matching = review_service.list_reviews(session, product.id, review_sort, review_filter)
    reviews = matching.limit(shown + 1).all()

    review_form = None
    if g.user and not session.query(ProductReview.id).filter_by(product_id=product.id, user_id=g.user.id).first():
        review_form = _review_form(product)

    return render_template(
        'shop/product_detail.html',
        product=product,
        related=related,
        reviews=reviews[:shown],
        more_reviews=len(reviews) > shown,
        shown=shown,
        review_summary=review_service.product_summary(session, product.id),
        review_sort=review_sort,
        review_filter=review_filter,
        review_form=review_form,
    )


def _review_form(product) -> ReviewForm:
    form = ReviewForm()
    form.variant_name.choices = [('', '- Not sure -')] + [(v.name, v.name) for v in product.variants]
    return form


@shop_bp.route('/product/<slug>/reviews', methods=['POST'])
@require_login
def review_submit(slug: str) -> Response:
    session = get_session()
    product = session.query(Product).filter_by(slug=slug, is_active=True).first()
    if not product:
        abort(404)

    form = _review_form(product)
    if not form.validate():
        raise BusinessLogicError('Please choose a rating from 1 to 5 stars')
    review_service.submit_review(
        session, product, g.user, form.rating.data, form.content.data,
        title=form.title.data, variant_name=form.variant_name.data,
    )
    flash('Thank you for your review.', 'success')
    return redirect(url_for('shop.product_detail', slug=slug, _anchor='reviews'))


@shop_bp.route('/reviews/<int:review_id>/helpful', methods=['POST'])
def review_helpful(review_id: int) -> Union[Response, tuple]:
    """Count a helpful vote, once per review per visitor session."""
    voted = session_store.get(HELPFUL_SESSION_KEY, [])
    if review_id in voted:
        review = get_session().get(ProductReview, review_id)
        if review is None or not review.is_approved:
            raise NotFoundError('Review not found')
    else:
        review = review_service.mark_helpful(get_session(), review_id)
        session_store[HELPFUL_SESSION_KEY] = (voted + [review_id])[-200:]
    if request.is_json or request.headers.get('HX-Request'):
        return jsonify({'status': 'ok', 'helpful_count': review.helpful_count})
    return redirect(url_for('shop.product_detail', slug=review.product.slug, _anchor='reviews'))


# =====================================================
# CART
# =====================================================

@shop_bp.route('/cart')
def cart() -> str:
    cart = get_cart()
    options = shipping_options(current_app.config)
    totals = order_totals(cart.subtotal, 'standard', options)
    return render_template(
        'shop/cart.html',
        cart=cart,
        lines=cart.lines(),
        totals=totals,
        to_free_shipping=amount_to_free_shipping(cart.subtotal, options),
    )


@shop_bp.route('/cart/add', methods=['POST'])
def cart_add() -> Union[Response, tuple]:
    """Add a variant to the cart; customisation attributes come from the form."""
    session = get_session()
    variant_id = request.form.get('variant_id', type=int)
    quantity = request.form.get('quantity', 1, type=int)

    if not variant_id:
        raise BusinessLogicError('Please choose an option')

    variant = session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError('Product not available')

    attributes = {key: request.form.get(key, '').strip() for key in ATTRIBUTE_KEYS}
    cart = get_cart()
    add_variant_to_cart(cart, variant, quantity, attributes)
    save_cart(cart)
    logger.info(f"[CART] Added {quantity} x {variant.sku}")

    if request.is_json or request.headers.get('HX-Request'):
        return jsonify({'status': 'ok', 'item_count': cart.item_count, 'subtotal': str(cart.subtotal)})

    flash(f'Added {variant.product.name} to your bag.', 'success')
    return redirect(safe_next_url(request.form.get('next')) or url_for('shop.cart'))


@shop_bp.route('/cart/update/<item_id>', methods=['POST'])
def cart_update(item_id: str) -> Response:
    """Set a line's quantity; zero removes it."""
    quantity = request.form.get('quantity', type=int)
    if quantity is None:
        raise BusinessLogicError('Invalid quantity')

    cart = get_cart()
    item = cart.find(item_id)
    if item is None:
        raise NotFoundError('Cart item not found')

    if quantity > 0:
        variant = get_session().get(ProductVariant, item['variant_id'])
        available = variant.stock_quantity if variant else 0
        if quantity > available:
            flash(f'Only {available} of {item["name"]} available.', 'warning')
            quantity = available

    cart.update_quantity(item_id, quantity)
    save_cart(cart)
    return redirect(url_for('shop.cart'))


@shop_bp.route('/cart/remove/<item_id>', methods=['POST'])
def cart_remove(item_id: str) -> Response:
    cart = get_cart()
    cart.remove_item(item_id)
    save_cart(cart)
    flash('Item removed from your bag.', 'info')
    return redirect(url_for('shop.cart'))
