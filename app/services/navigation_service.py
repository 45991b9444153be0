"""
Cached lookups shared by every storefront page: the category menu and
per-path SEO overrides. Values are plain dicts so they survive the JSON
round trip through Redis.
"""
from app.database import get_session
from app.models import Category, SeoPage
from app.services.cache_service import get_cache, NAVIGATION, SEO

SEO_FIELDS = ('meta_title', 'meta_description', 'meta_keywords', 'og_title',
              'og_description', 'og_image', 'twitter_card')


def _load_navigation() -> list:
    categories = (
        get_session().query(Category)
        .filter(Category.is_active.is_(True), Category.parent_id.is_(None))
        .order_by(Category.sort_order.asc(), Category.name.asc())
        .all()
    )
    return [
        {
            'name': c.name,
            'slug': c.slug,
            'children': [
                {'name': child.name, 'slug': child.slug}
                for child in sorted(c.children, key=lambda x: (x.sort_order, x.name))
                if child.is_active
            ],
        }
        for c in categories
    ]


def navigation_categories() -> list:
    return get_cache().memoize(NAVIGATION, 'categories', _load_navigation)


def _load_seo(path: str) -> dict:
    page = get_session().query(SeoPage).filter_by(page_path=path).first()
    if not page:
        return {}
    return {field: getattr(page, field) for field in SEO_FIELDS}


def seo_meta_for(path: str) -> dict:
    """SEO overrides for a path; empty when none are configured."""
    if path.startswith('/admin'):
        return {}
    return get_cache().memoize(SEO, path, lambda: _load_seo(path))
