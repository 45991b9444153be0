"""Main blueprint: home page, informational pages, blog, CMS pages and health checks."""
from datetime import datetime, timezone
from flask import Blueprint, render_template, jsonify, current_app, abort, request
from sqlalchemy import or_
from app.database import get_session, ping
from app.models import Banner, Product, Category
from app.services import content_service
from app.services.cache_service import get_cache
import logging

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)

INFO_PAGES = {
    'about': 'About Lumicea',
    'care': 'Jewellery Care',
    'faq': 'Frequently Asked Questions',
    'shipping': 'Shipping & Returns',
    'contact': 'Contact Us',
    'size-guide': 'Size Guide',
    'privacy': 'Privacy Policy',
    'terms': 'Terms of Service',
    'cookies': 'Cookie Policy',
}


def _live_banners(session, position: str) -> list:
    now = datetime.now(timezone.utc)
    return (
        session.query(Banner)
        .filter(
            Banner.is_active.is_(True),
            Banner.position == position,
            or_(Banner.starts_at.is_(None), Banner.starts_at <= now),
            or_(Banner.ends_at.is_(None), Banner.ends_at >= now),
        )
        .order_by(Banner.sort_order.asc(), Banner.id.asc())
        .all()
    )


@main_bp.route('/')
def home():
    """Storefront home: hero banners, featured pieces and top-level categories."""
    session = get_session()
    featured = (
        session.query(Product)
        .filter(Product.is_active.is_(True), Product.is_featured.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(8)
        .all()
    )
    categories = (
        session.query(Category)
        .filter(Category.is_active.is_(True), Category.parent_id.is_(None))
        .order_by(Category.sort_order.asc(), Category.name.asc())
        .all()
    )
    return render_template(
        'main/home.html',
        hero_banners=_live_banners(session, 'hero'),
        featured=featured,
        categories=categories,
    )


@main_bp.route('/blog')
def blog() -> str:
    session = get_session()
    category = request.args.get('category', '').strip()
    posts = content_service.published_posts(session, category).all()
    return render_template(
        'main/blog.html',
        posts=posts,
        categories=content_service.blog_categories(session),
        current_category=category,
    )


@main_bp.route('/blog/<slug>')
def blog_post(slug: str) -> str:
    post = content_service.published_post(get_session(), slug)
    if post is None:
        abort(404)
    return render_template('main/blog_post.html', post=post)


@main_bp.route('/pages/<slug>')
def content_page(slug: str) -> str:
    page = content_service.published_page(get_session(), slug)
    if page is None:
        abort(404)
    return render_template('main/content_page.html', page=page)


@main_bp.route('/<page>')
def info_page(page):
    title = INFO_PAGES.get(page)
    if title is None:
        abort(404)
    template = f"main/pages/{page.replace('-', '_')}.html"
    return render_template(template, page_title=title)


@main_bp.route('/health')
def health():
    """Liveness plus database connectivity."""
    try:
        db_ok = ping()
    except Exception as e:
        logger.error(f"[HEALTH] Database check failed: {e}")
        db_ok = False
    status = 'healthy' if db_ok else 'unhealthy'
    return jsonify({'status': status, 'database': 'ok' if db_ok else 'error'}), (200 if db_ok else 503)


@main_bp.route('/health/cache')
def health_cache():
    """Redis status; the store keeps working when it is down."""
    enabled = current_app.config.get('CACHE_ENABLED', False)
    try:
        available = get_cache().is_available()
    except RuntimeError:
        available = False
    return jsonify({
        'enabled': enabled,
        'available': available,
        'status': 'ok' if available or not enabled else 'degraded',
    })
