"""
Admin catalog blueprint: products (with variants), categories and tags.

Create and edit share one view per entity; a missing id means insert.
"""
from flask import Blueprint, render_template, request, redirect, url_for, flash, abort, current_app, Response
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from typing import Optional, Union
from app.database import get_session
from app.forms.admin_forms import CategoryForm, TagForm, ProductForm, VariantForm, populate
from app.middleware import require_admin
from app.models import Product, ProductVariant, Category, Tag
from app.services.cache_service import invalidate_catalog_cache
from app.services.storage_service import get_storage_service
from app.utils.text import slugify
import logging

logger = logging.getLogger(__name__)

admin_catalog_bp = Blueprint('admin_catalog', __name__, url_prefix='/admin/catalog')


def save_uploaded_image(file, folder: str) -> Optional[str]:
    """
    Normalize and upload an image from a form.

    Returns:
        Public URL, or None when nothing was uploaded or the upload failed
    """
    if not file or not file.filename:
        return None
    try:
        return get_storage_service().upload_image(file, folder)
    except ValueError as e:
        flash(str(e), 'danger')
    except Exception as e:
        logger.exception(f"[STORAGE] Image upload failed: {e}")
        flash('Image upload failed; the previous image was kept.', 'warning')
    return None


def unique_violation_message(error: IntegrityError, entity: str) -> str:
    """Turn a database constraint violation into something an admin can act on."""
    message = str(error.orig).lower()
    for column in ('slug', 'sku', 'code', 'page_path'):
        if column in message:
            return f'That {column.replace("_", " ")} is already used by another {entity}.'
    return f'Could not save the {entity}: it conflicts with existing data.'


def _category_choices(session, exclude_id: int = None) -> list:
    categories = session.query(Category).order_by(Category.sort_order.asc(), Category.name.asc()).all()
    return [('', '- None -')] + [(c.id, c.name) for c in categories if c.id != exclude_id]


# =====================================================
# PRODUCTS
# =====================================================

@admin_catalog_bp.route('/products')
@require_admin
def products() -> str:
    session = get_session()
    search = request.args.get('q', '').strip()
    category_id = request.args.get('category_id', type=int)

    query = session.query(Product)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(or_(
            Product.name.ilike(term),
            Product.slug.ilike(term),
            Product.variants.any(ProductVariant.sku.ilike(term)),
        ))
    if category_id:
        query = query.filter(Product.category_id == category_id)

    return render_template(
        'admin/catalog/products.html',
        products=query.order_by(Product.created_at.desc(), Product.id.desc()).all(),
        categories=session.query(Category).order_by(Category.name).all(),
        search=search,
        category_id=category_id,
    )


@admin_catalog_bp.route('/products/new', methods=['GET', 'POST'])
@admin_catalog_bp.route('/products/<int:product_id>/edit', methods=['GET', 'POST'])
@require_admin
def product_form(product_id: int = None) -> Union[str, Response]:
    session = get_session()
    product = None
    if product_id is not None:
        product = session.get(Product, product_id)
        if not product:
            abort(404)

    form = ProductForm(obj=product)
    form.category_id.choices = _category_choices(session)
    form.tag_ids.choices = [(t.id, t.name) for t in session.query(Tag).order_by(Tag.name).all()]
    if product is not None and request.method == 'GET':
        form.tag_ids.data = [t.id for t in product.tags]

    if form.validate_on_submit():
        is_new = product is None
        if is_new:
            product = Product()
            session.add(product)

        populate(form, product, exclude=('tag_ids', 'slug'))
        product.slug = slugify(form.slug.data or '') or slugify(form.name.data)
        tag_ids = form.tag_ids.data or []
        product.tags = session.query(Tag).filter(Tag.id.in_(tag_ids)).all() if tag_ids else []

        image_url = save_uploaded_image(form.image.data, 'products')
        if image_url:
            product.image_url = image_url

        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'product'), 'danger')
            return render_template('admin/catalog/product_form.html', form=form, product=None if is_new else product), 400

        invalidate_catalog_cache()
        logger.info(f"[ADMIN] Product {'created' if is_new else 'updated'}: {product.slug}")
        flash(f'Product "{product.name}" saved.', 'success')
        if is_new:
            return redirect(url_for('admin_catalog.product_form', product_id=product.id))
        return redirect(url_for('admin_catalog.products'))

    return render_template(
        'admin/catalog/product_form.html',
        form=form,
        product=product,
        variant_form=VariantForm(formdata=None),
    )


@admin_catalog_bp.route('/products/<int:product_id>/toggle-active', methods=['POST'])
@require_admin
def product_toggle_active(product_id: int) -> Response:
    session = get_session()
    product = session.get(Product, product_id)
    if not product:
        abort(404)
    product.is_active = not product.is_active
    session.commit()
    invalidate_catalog_cache()
    flash(f'Product "{product.name}" {"activated" if product.is_active else "deactivated"}.', 'success')
    return redirect(url_for('admin_catalog.products'))


@admin_catalog_bp.route('/products/<int:product_id>/delete', methods=['POST'])
@require_admin
def product_delete(product_id: int) -> Response:
    session = get_session()
    product = session.get(Product, product_id)
    if not product:
        flash('Product not found.', 'warning')
        return redirect(url_for('admin_catalog.products'))

    name = product.name
    try:
        session.delete(product)
        session.commit()
    except IntegrityError:
        session.rollback()
        flash(f'"{name}" has orders and cannot be deleted. Deactivate it instead.', 'danger')
        return redirect(url_for('admin_catalog.products'))

    invalidate_catalog_cache()
    flash(f'Product "{name}" deleted.', 'success')
    return redirect(url_for('admin_catalog.products'))


# =====================================================
# VARIANTS
# =====================================================

@admin_catalog_bp.route('/products/<int:product_id>/variants/new', methods=['POST'])
@admin_catalog_bp.route('/variants/<int:variant_id>/edit', methods=['GET', 'POST'])
@require_admin
def variant_form(product_id: int = None, variant_id: int = None) -> Union[str, Response]:
    session = get_session()
    variant = None
    if variant_id is not None:
        variant = session.get(ProductVariant, variant_id)
        if not variant:
            abort(404)
        product = variant.product
    else:
        product = session.get(Product, product_id)
        if not product:
            abort(404)

    form = VariantForm(obj=variant)
    if form.validate_on_submit():
        is_new = variant is None
        if is_new:
            variant = ProductVariant(product=product)
            session.add(variant)
        populate(form, variant)
        variant.sku = variant.sku.upper()

        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'variant'), 'danger')
            return redirect(url_for('admin_catalog.product_form', product_id=product.id))

        invalidate_catalog_cache()
        flash(f'Variant {variant.sku} saved.', 'success')
        return redirect(url_for('admin_catalog.product_form', product_id=product.id))

    if request.method == 'POST':
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        if variant is None:
            return redirect(url_for('admin_catalog.product_form', product_id=product.id))

    return render_template('admin/catalog/variant_form.html', form=form, variant=variant, product=product)


@admin_catalog_bp.route('/variants/<int:variant_id>/delete', methods=['POST'])
@require_admin
def variant_delete(variant_id: int) -> Response:
    session = get_session()
    variant = session.get(ProductVariant, variant_id)
    if not variant:
        abort(404)
    product_id, sku = variant.product_id, variant.sku
    try:
        session.delete(variant)
        session.commit()
    except IntegrityError:
        session.rollback()
        flash(f'Variant {sku} has orders and cannot be deleted. Deactivate it instead.', 'danger')
        return redirect(url_for('admin_catalog.product_form', product_id=product_id))

    invalidate_catalog_cache()
    flash(f'Variant {sku} deleted.', 'success')
    return redirect(url_for('admin_catalog.product_form', product_id=product_id))


# =====================================================
# CATEGORIES
# =====================================================

@admin_catalog_bp.route('/categories')
@require_admin
def categories() -> str:
    categories = get_session().query(Category).order_by(Category.sort_order.asc(), Category.name.asc()).all()
    return render_template('admin/catalog/categories.html', categories=categories)


@admin_catalog_bp.route('/categories/new', methods=['GET', 'POST'])
@admin_catalog_bp.route('/categories/<int:category_id>/edit', methods=['GET', 'POST'])
@require_admin
def category_form(category_id: int = None) -> Union[str, Response]:
    session = get_session()
    category = None
    if category_id is not None:
        category = session.get(Category, category_id)
        if not category:
            abort(404)

    form = CategoryForm(obj=category)
    form.parent_id.choices = _category_choices(session, exclude_id=category_id)

    if form.validate_on_submit():
        is_new = category is None
        if is_new:
            category = Category()
            session.add(category)
        populate(form, category, exclude=('slug',))
        category.slug = slugify(form.slug.data or '') or slugify(form.name.data)

        image_url = save_uploaded_image(form.image.data, 'categories')
        if image_url:
            category.image_url = image_url

        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'category'), 'danger')
            return render_template('admin/catalog/category_form.html', form=form,
                                   category=None if is_new else category), 400

        invalidate_catalog_cache()
        flash(f'Category "{category.name}" saved.', 'success')
        return redirect(url_for('admin_catalog.categories'))

    return render_template('admin/catalog/category_form.html', form=form, category=category)


@admin_catalog_bp.route('/categories/<int:category_id>/delete', methods=['POST'])
@require_admin
def category_delete(category_id: int) -> Response:
    session = get_session()
    category = session.get(Category, category_id)
    if not category:
        abort(404)
    if category.products or category.children:
        flash(f'"{category.name}" still has products or subcategories.', 'danger')
        return redirect(url_for('admin_catalog.categories'))

    name = category.name
    session.delete(category)
    session.commit()
    invalidate_catalog_cache()
    flash(f'Category "{name}" deleted.', 'success')
    return redirect(url_for('admin_catalog.categories'))


# =====================================================
# TAGS
# =====================================================

@admin_catalog_bp.route('/tags')
@require_admin
def tags() -> str:
    return render_template('admin/catalog/tags.html', tags=get_session().query(Tag).order_by(Tag.name).all())


@admin_catalog_bp.route('/tags/new', methods=['GET', 'POST'])
@admin_catalog_bp.route('/tags/<int:tag_id>/edit', methods=['GET', 'POST'])
@require_admin
def tag_form(tag_id: int = None) -> Union[str, Response]:
    session = get_session()
    tag = None
    if tag_id is not None:
        tag = session.get(Tag, tag_id)
        if not tag:
            abort(404)

    form = TagForm(obj=tag)
    if form.validate_on_submit():
        is_new = tag is None
        if is_new:
            tag = Tag()
            session.add(tag)
        populate(form, tag, exclude=('slug',))
        tag.slug = slugify(form.slug.data or '') or slugify(form.name.data)

        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'tag'), 'danger')
            return render_template('admin/catalog/tag_form.html', form=form, tag=None if is_new else tag), 400

        invalidate_catalog_cache()
        flash(f'Tag "{tag.name}" saved.', 'success')
        return redirect(url_for('admin_catalog.tags'))

    return render_template('admin/catalog/tag_form.html', form=form, tag=tag)


@admin_catalog_bp.route('/tags/<int:tag_id>/delete', methods=['POST'])
@require_admin
def tag_delete(tag_id: int) -> Response:
    session = get_session()
    tag = session.get(Tag, tag_id)
    if not tag:
        abort(404)
    name = tag.name
    session.delete(tag)
    session.commit()
    invalidate_catalog_cache()
    flash(f'Tag "{name}" deleted.', 'success')
    return redirect(url_for('admin_catalog.tags'))
