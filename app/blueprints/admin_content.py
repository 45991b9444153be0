"""
Admin content blueprint: blog posts, CMS pages and review moderation.
"""
from flask import Blueprint, render_template, request, redirect, url_for, flash, abort, g, Response
from sqlalchemy.exc import IntegrityError
from typing import Union
from app.database import get_session
from app.exceptions import BusinessLogicError
from app.forms.admin_forms import BlogPostForm, ContentPageForm, populate
from app.middleware import require_admin
from app.models import BlogPost, ContentPage, ProductReview
from app.services import content_service
from app.blueprints.admin_catalog import save_uploaded_image, unique_violation_message
import logging

logger = logging.getLogger(__name__)

admin_content_bp = Blueprint('admin_content', __name__, url_prefix='/admin/content')

REQUIRED_TEXT_FIELDS = ('title', 'slug', 'content')


def _copy_text_fields(form, obj) -> None:
    """Title, slug and content are copied as typed so blanks reach validation."""
    for name in REQUIRED_TEXT_FIELDS:
        if name in form:
            setattr(obj, name, (form[name].data or '').strip())


# =====================================================
# BLOG
# =====================================================

@admin_content_bp.route('/blog')
@require_admin
def blog_posts() -> str:
    search = request.args.get('q', '').strip()
    posts = content_service.list_posts(get_session(), search).all()
    return render_template('admin/content/blog_posts.html', posts=posts, search=search)


@admin_content_bp.route('/blog/new', methods=['GET', 'POST'])
@admin_content_bp.route('/blog/<int:post_id>/edit', methods=['GET', 'POST'])
@require_admin
def blog_post_form(post_id: int = None) -> Union[str, Response, tuple]:
    session = get_session()
    post = None
    if post_id is not None:
        post = session.get(BlogPost, post_id)
        if not post:
            abort(404)

    form = BlogPostForm(obj=post)
    if form.validate_on_submit():
        is_new = post is None
        target = BlogPost(author_id=g.user.id) if is_new else post
        populate(form, target, exclude=REQUIRED_TEXT_FIELDS)
        _copy_text_fields(form, target)
        try:
            content_service.prepare_post(target)
        except BusinessLogicError as e:
            session.rollback()
            flash(e.message, 'danger')
            return render_template('admin/content/blog_post_form.html', form=form, post=post), 400

        image_url = save_uploaded_image(form.image.data, 'blog')
        if image_url:
            target.featured_image = image_url

        if is_new:
            session.add(target)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'blog post'), 'danger')
            return render_template('admin/content/blog_post_form.html', form=form, post=post), 400

        logger.info(f"[ADMIN] Blog post '{target.slug}' saved by {g.user.email}")
        flash(f'Blog post {"created" if is_new else "updated"} successfully!', 'success')
        return redirect(url_for('admin_content.blog_posts'))

    return render_template('admin/content/blog_post_form.html', form=form, post=post)


@admin_content_bp.route('/blog/<int:post_id>/delete', methods=['POST'])
@require_admin
def blog_post_delete(post_id: int) -> Response:
    session = get_session()
    post = session.get(BlogPost, post_id)
    if not post:
        abort(404)
    title = post.title
    session.delete(post)
    session.commit()
    flash(f'Blog post "{title}" deleted.', 'success')
    return redirect(url_for('admin_content.blog_posts'))


# =====================================================
# PAGES
# =====================================================

@admin_content_bp.route('/pages')
@require_admin
def pages() -> str:
    search = request.args.get('q', '').strip()
    items = content_service.list_pages(get_session(), search).all()
    return render_template('admin/content/pages.html', pages=items, search=search)


@admin_content_bp.route('/pages/new', methods=['GET', 'POST'])
@admin_content_bp.route('/pages/<int:page_id>/edit', methods=['GET', 'POST'])
@require_admin
def page_form(page_id: int = None) -> Union[str, Response, tuple]:
    session = get_session()
    page = None
    if page_id is not None:
        page = session.get(ContentPage, page_id)
        if not page:
            abort(404)

    form = ContentPageForm(obj=page)
    if form.validate_on_submit():
        is_new = page is None
        target = ContentPage() if is_new else page
        populate(form, target, exclude=REQUIRED_TEXT_FIELDS)
        _copy_text_fields(form, target)
        target.content = target.content or None
        try:
            content_service.prepare_page(target)
        except BusinessLogicError as e:
            session.rollback()
            flash(e.message, 'danger')
            return render_template('admin/content/page_form.html', form=form, page=page), 400

        if is_new:
            session.add(target)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'page'), 'danger')
            return render_template('admin/content/page_form.html', form=form, page=page), 400

        flash(f'Page "{target.title}" saved.', 'success')
        return redirect(url_for('admin_content.pages'))

    return render_template('admin/content/page_form.html', form=form, page=page)


@admin_content_bp.route('/pages/<int:page_id>/delete', methods=['POST'])
@require_admin
def page_delete(page_id: int) -> Response:
    session = get_session()
    page = session.get(ContentPage, page_id)
    if not page:
        abort(404)
    title = page.title
    session.delete(page)
    session.commit()
    flash(f'Page "{title}" deleted.', 'success')
    return redirect(url_for('admin_content.pages'))


# =====================================================
# REVIEWS
# =====================================================

@admin_content_bp.route('/reviews')
@require_admin
def reviews() -> str:
    visibility = request.args.get('show', 'all')
    query = get_session().query(ProductReview)
    if visibility == 'hidden':
        query = query.filter(ProductReview.is_approved.is_(False))
    elif visibility == 'visible':
        query = query.filter(ProductReview.is_approved.is_(True))
    items = query.order_by(ProductReview.created_at.desc(), ProductReview.id.desc()).all()
    return render_template('admin/content/reviews.html', reviews=items, visibility=visibility)


@admin_content_bp.route('/reviews/<int:review_id>/toggle', methods=['POST'])
@require_admin
def review_toggle(review_id: int) -> Response:
    session = get_session()
    review = session.get(ProductReview, review_id)
    if not review:
        abort(404)
    review.is_approved = not review.is_approved
    session.commit()
    flash(f'Review {"shown" if review.is_approved else "hidden"}.', 'success')
    return redirect(url_for('admin_content.reviews'))


@admin_content_bp.route('/reviews/<int:review_id>/delete', methods=['POST'])
@require_admin
def review_delete(review_id: int) -> Response:
    session = get_session()
    review = session.get(ProductReview, review_id)
    if not review:
        abort(404)
    session.delete(review)
    session.commit()
    flash('Review deleted.', 'success')
    return redirect(url_for('admin_content.reviews'))
