"""
Blog posts and CMS pages.

Both are edited in the admin and rendered on the storefront. Slugs default
to the title. A post gets its ``published_at`` the first time it is saved
as published and keeps it through later edits.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_

from app.exceptions import BusinessLogicError
from app.models import BlogPost, ContentPage
from app.utils.text import slugify

POST_REQUIRED_MESSAGE = 'Title, slug, and content are required'
PAGE_REQUIRED_MESSAGE = 'Title and slug are required'


def normalize_tags(raw: Optional[str]) -> Optional[str]:
    """'gold, care,Gold , ' -> 'gold, care' (trimmed, first spelling kept)."""
    seen = []
    for tag in (raw or '').split(','):
        tag = tag.strip()
        if tag and tag.lower() not in (t.lower() for t in seen):
            seen.append(tag)
    return ', '.join(seen) or None


def prepare_post(post: BlogPost, now: Optional[datetime] = None) -> BlogPost:
    """
    Fill the slug, tidy tags and stamp the first publication.

    Raises:
        BusinessLogicError: title, slug or content missing
    """
    post.slug = slugify(post.slug or '') or slugify(post.title or '')
    if not (post.title or '').strip() or not post.slug or not (post.content or '').strip():
        raise BusinessLogicError(POST_REQUIRED_MESSAGE)

    post.tags = normalize_tags(post.tags)
    if post.is_published and post.published_at is None:
        post.published_at = now or datetime.now(timezone.utc)
    return post


def prepare_page(page: ContentPage) -> ContentPage:
    """
    Raises:
        BusinessLogicError: title or slug missing
    """
    page.slug = slugify(page.slug or '') or slugify(page.title or '')
    if not (page.title or '').strip() or not page.slug:
        raise BusinessLogicError(PAGE_REQUIRED_MESSAGE)
    return page


def list_posts(session, search: str = ''):
    """Admin list, newest first; search covers title, slug, category and tags."""
    query = session.query(BlogPost)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(or_(
            BlogPost.title.ilike(term),
            BlogPost.slug.ilike(term),
            BlogPost.category.ilike(term),
            BlogPost.tags.ilike(term),
        ))
    return query.order_by(BlogPost.created_at.desc(), BlogPost.id.desc())


def published_posts(session, category: str = ''):
    query = session.query(BlogPost).filter(BlogPost.is_published.is_(True))
    if category:
        query = query.filter(BlogPost.category == category)
    return query.order_by(BlogPost.published_at.desc(), BlogPost.id.desc())


def blog_categories(session) -> list:
    rows = (
        session.query(BlogPost.category)
        .filter(BlogPost.is_published.is_(True), BlogPost.category.isnot(None))
        .distinct()
        .all()
    )
    return sorted(row[0] for row in rows if row[0])


def published_post(session, slug: str) -> Optional[BlogPost]:
    return session.query(BlogPost).filter_by(slug=slug, is_published=True).first()


def list_pages(session, search: str = ''):
    query = session.query(ContentPage)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(or_(ContentPage.title.ilike(term), ContentPage.slug.ilike(term)))
    return query.order_by(ContentPage.title.asc())


def published_page(session, slug: str) -> Optional[ContentPage]:
    return session.query(ContentPage).filter_by(slug=slug, is_published=True).first()
