"""
Admin marketing blueprint: promotions, banners, email campaigns, per-page
SEO metadata and the marketing overview with its on-page SEO score.
"""
from flask import Blueprint, render_template, request, redirect, url_for, flash, abort, current_app, g, Response
from sqlalchemy.exc import IntegrityError
from typing import Union, Tuple
from app.database import get_session
from app.exceptions import BusinessLogicError
from app.forms.admin_forms import (
    BannerForm, PromotionForm, CampaignForm, SendTestEmailForm, SeoPageForm, populate
)
from app.middleware import require_admin
from app.models import Banner, Promotion, EmailCampaign, CampaignStatus, SeoPage, Category
from app.services import promotion_service, campaign_service
from app.services.cache_service import invalidate_catalog_cache, invalidate_seo_cache
from app.services.seo_service import analyze_page
from app.blueprints.admin_catalog import save_uploaded_image, unique_violation_message
from app.blueprints.metrics import record_campaign_delivery
import logging

logger = logging.getLogger(__name__)

admin_marketing_bp = Blueprint('admin_marketing', __name__, url_prefix='/admin/marketing')

EDITABLE_CAMPAIGN_STATUSES = (CampaignStatus.DRAFT.value, CampaignStatus.SCHEDULED.value)


def _render_storefront_page(path: str) -> Tuple[int, str]:
    """
    Render a storefront page in-process as an anonymous visitor.

    Runs in its own app context so the visitor's g does not leak into the
    admin request. Leaving that context removes the scoped database
    session; callers query after this returns.
    """
    with current_app.app_context():
        response = current_app.test_client().get(path)
        return response.status_code, response.get_data(as_text=True)


@admin_marketing_bp.route('/')
@require_admin
def overview() -> str:
    """Marketing summary plus the SEO score of the home page (or an entered path)."""
    path = request.args.get('path', '/').strip() or '/'
    if not path.startswith('/'):
        path = '/' + path

    analysis = None
    status_code, html = _render_storefront_page(path)
    if status_code == 200:
        analysis = analyze_page(html, current_app.config['SITE_URL'].rstrip('/') + path)
        logger.info(f"[SEO] {path} scored {analysis.score}")
    else:
        flash(f'{path} returned HTTP {status_code}; only public pages can be analysed.', 'warning')

    session = get_session()
    promotions = promotion_service.list_promotions(session)
    return render_template(
        'admin/marketing/overview.html',
        path=path,
        analysis=analysis,
        promotion_summary=promotion_service.summary(promotions),
        banner_count=session.query(Banner).filter(Banner.is_active.is_(True)).count(),
        campaigns=session.query(EmailCampaign).order_by(EmailCampaign.created_at.desc(),
                                                        EmailCampaign.id.desc()).limit(5).all(),
        seo_page_count=session.query(SeoPage).count(),
    )


# =====================================================
# PROMOTIONS
# =====================================================

@admin_marketing_bp.route('/promotions')
@require_admin
def promotions() -> str:
    search = request.args.get('q', '').strip()
    items = promotion_service.list_promotions(get_session(), search)
    return render_template(
        'admin/marketing/promotions.html',
        promotions=items,
        summary=promotion_service.summary(items),
        status_of=promotion_service.status,
        format_value=promotion_service.format_value,
        search=search,
    )


@admin_marketing_bp.route('/promotions/new', methods=['GET', 'POST'])
@admin_marketing_bp.route('/promotions/<int:promotion_id>/edit', methods=['GET', 'POST'])
@require_admin
def promotion_form(promotion_id: int = None) -> Union[str, Response]:
    session = get_session()
    promotion = None
    if promotion_id is not None:
        promotion = session.get(Promotion, promotion_id)
        if not promotion:
            abort(404)

    form = PromotionForm(obj=promotion)
    if form.validate_on_submit():
        is_new = promotion is None
        code = (form.code.data or '').strip().upper()
        if not code:
            if not is_new:
                flash('Promotion code cannot be empty.', 'danger')
                return render_template('admin/marketing/promotion_form.html', form=form, promotion=promotion), 400
            code = promotion_service.generate_code(form.name.data)
        if not code:
            flash('Enter a code or a name with letters or digits.', 'danger')
            return render_template('admin/marketing/promotion_form.html', form=form, promotion=None), 400

        if is_new:
            promotion = Promotion()
            session.add(promotion)
        populate(form, promotion, exclude=('code',))
        promotion.code = code

        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'promotion'), 'danger')
            return render_template('admin/marketing/promotion_form.html', form=form,
                                   promotion=None if is_new else promotion), 400

        logger.info(f"[ADMIN] Promotion saved: {promotion.code}")
        flash(f'Promotion {promotion.code} saved.', 'success')
        return redirect(url_for('admin_marketing.promotions'))

    return render_template('admin/marketing/promotion_form.html', form=form, promotion=promotion)


@admin_marketing_bp.route('/promotions/<int:promotion_id>/toggle-active', methods=['POST'])
@require_admin
def promotion_toggle_active(promotion_id: int) -> Response:
    session = get_session()
    promotion = session.get(Promotion, promotion_id)
    if not promotion:
        abort(404)
    promotion.is_active = not promotion.is_active
    session.commit()
    flash(f'Promotion {promotion.code} {"activated" if promotion.is_active else "deactivated"}.', 'success')
    return redirect(url_for('admin_marketing.promotions'))


@admin_marketing_bp.route('/promotions/<int:promotion_id>/delete', methods=['POST'])
@require_admin
def promotion_delete(promotion_id: int) -> Response:
    session = get_session()
    promotion = session.get(Promotion, promotion_id)
    if not promotion:
        abort(404)
    code = promotion.code
    session.delete(promotion)
    session.commit()
    flash(f'Promotion {code} deleted.', 'success')
    return redirect(url_for('admin_marketing.promotions'))


# =====================================================
# BANNERS
# =====================================================

@admin_marketing_bp.route('/banners')
@require_admin
def banners() -> str:
    items = get_session().query(Banner).order_by(Banner.position, Banner.sort_order, Banner.id).all()
    return render_template('admin/marketing/banners.html', banners=items)


@admin_marketing_bp.route('/banners/new', methods=['GET', 'POST'])
@admin_marketing_bp.route('/banners/<int:banner_id>/edit', methods=['GET', 'POST'])
@require_admin
def banner_form(banner_id: int = None) -> Union[str, Response]:
    session = get_session()
    banner = None
    if banner_id is not None:
        banner = session.get(Banner, banner_id)
        if not banner:
            abort(404)

    form = BannerForm(obj=banner)
    form.target_category_id.choices = [('', '- Any -')] + [
        (c.id, c.name) for c in session.query(Category).order_by(Category.name).all()
    ]

    if form.validate_on_submit():
        is_new = banner is None
        if is_new:
            banner = Banner()
            session.add(banner)
        populate(form, banner)

        image_url = save_uploaded_image(form.image.data, 'banners')
        if image_url:
            banner.image_url = image_url

        session.commit()
        invalidate_catalog_cache()
        flash(f'Banner "{banner.title}" saved.', 'success')
        return redirect(url_for('admin_marketing.banners'))

    return render_template('admin/marketing/banner_form.html', form=form, banner=banner)


@admin_marketing_bp.route('/banners/<int:banner_id>/delete', methods=['POST'])
@require_admin
def banner_delete(banner_id: int) -> Response:
    session = get_session()
    banner = session.get(Banner, banner_id)
    if not banner:
        abort(404)
    title = banner.title
    session.delete(banner)
    session.commit()
    invalidate_catalog_cache()
    flash(f'Banner "{title}" deleted.', 'success')
    return redirect(url_for('admin_marketing.banners'))


# =====================================================
# EMAIL CAMPAIGNS
# =====================================================

@admin_marketing_bp.route('/campaigns')
@require_admin
def campaigns() -> str:
    items = get_session().query(EmailCampaign).order_by(
        EmailCampaign.created_at.desc(), EmailCampaign.id.desc()
    ).all()
    return render_template('admin/marketing/campaigns.html', campaigns=items,
                           variables=campaign_service.TEMPLATE_VARIABLES)


@admin_marketing_bp.route('/campaigns/new', methods=['GET', 'POST'])
@admin_marketing_bp.route('/campaigns/<int:campaign_id>/edit', methods=['GET', 'POST'])
@require_admin
def campaign_form(campaign_id: int = None) -> Union[str, Response]:
    session = get_session()
    campaign = None
    if campaign_id is not None:
        campaign = session.get(EmailCampaign, campaign_id)
        if not campaign:
            abort(404)
        if campaign.status not in EDITABLE_CAMPAIGN_STATUSES:
            flash(f'A {campaign.status} campaign can no longer be edited.', 'warning')
            return redirect(url_for('admin_marketing.campaign_detail', campaign_id=campaign.id))

    form = CampaignForm(obj=campaign)
    if form.validate_on_submit():
        if campaign is None:
            campaign = EmailCampaign(created_by=g.user.id)
            session.add(campaign)
        populate(form, campaign)
        campaign.status = (CampaignStatus.SCHEDULED.value if campaign.scheduled_at
                           else CampaignStatus.DRAFT.value)
        session.commit()
        flash(f'Campaign "{campaign.name}" saved.', 'success')
        return redirect(url_for('admin_marketing.campaign_detail', campaign_id=campaign.id))

    return render_template('admin/marketing/campaign_form.html', form=form, campaign=campaign,
                           variables=campaign_service.TEMPLATE_VARIABLES)


@admin_marketing_bp.route('/campaigns/<int:campaign_id>')
@require_admin
def campaign_detail(campaign_id: int) -> str:
    session = get_session()
    campaign = session.get(EmailCampaign, campaign_id)
    if not campaign:
        abort(404)
    return render_template(
        'admin/marketing/campaign_detail.html',
        campaign=campaign,
        preview_html=campaign_service.render_preview(campaign.content),
        preview_subject=campaign_service.render_preview(campaign.subject),
        recipient_count=len(campaign_service.recipients(session)),
        test_form=SendTestEmailForm(data={'email': g.user.email}),
        editable=campaign.status in EDITABLE_CAMPAIGN_STATUSES,
    )


@admin_marketing_bp.route('/campaigns/<int:campaign_id>/test', methods=['POST'])
@require_admin
def campaign_send_test(campaign_id: int) -> Response:
    campaign = get_session().get(EmailCampaign, campaign_id)
    if not campaign:
        abort(404)
    form = SendTestEmailForm()
    if not form.validate():
        flash('Enter a valid email address for the test.', 'danger')
    elif campaign_service.send_test(campaign, form.email.data.strip()):
        flash(f'Test email sent to {form.email.data.strip()}.', 'success')
    else:
        flash('The test email could not be sent. Check the mail settings.', 'danger')
    return redirect(url_for('admin_marketing.campaign_detail', campaign_id=campaign_id))


@admin_marketing_bp.route('/campaigns/<int:campaign_id>/send', methods=['POST'])
@require_admin
def campaign_send(campaign_id: int) -> Response:
    campaign = campaign_service.send_campaign(get_session(), campaign_id)
    record_campaign_delivery(campaign.recipients_count)
    flash(f'Campaign "{campaign.name}" sent to {campaign.recipients_count} customers.', 'success')
    return redirect(url_for('admin_marketing.campaign_detail', campaign_id=campaign_id))


@admin_marketing_bp.route('/campaigns/<int:campaign_id>/cancel', methods=['POST'])
@require_admin
def campaign_cancel(campaign_id: int) -> Response:
    session = get_session()
    campaign = session.get(EmailCampaign, campaign_id)
    if not campaign:
        abort(404)
    if campaign.status not in EDITABLE_CAMPAIGN_STATUSES:
        raise BusinessLogicError(f'A {campaign.status} campaign cannot be cancelled')
    campaign.status = CampaignStatus.CANCELLED.value
    session.commit()
    flash(f'Campaign "{campaign.name}" cancelled.', 'info')
    return redirect(url_for('admin_marketing.campaigns'))


@admin_marketing_bp.route('/campaigns/<int:campaign_id>/delete', methods=['POST'])
@require_admin
def campaign_delete(campaign_id: int) -> Response:
    session = get_session()
    campaign = session.get(EmailCampaign, campaign_id)
    if not campaign:
        abort(404)
    if campaign.status == CampaignStatus.SENDING.value:
        raise BusinessLogicError('A campaign cannot be deleted while it is sending')
    name = campaign.name
    session.delete(campaign)
    session.commit()
    flash(f'Campaign "{name}" deleted.', 'success')
    return redirect(url_for('admin_marketing.campaigns'))


# =====================================================
# SEO PAGES
# =====================================================

@admin_marketing_bp.route('/seo')
@require_admin
def seo_pages() -> str:
    items = get_session().query(SeoPage).order_by(SeoPage.page_path).all()
    return render_template('admin/marketing/seo_pages.html', pages=items)


@admin_marketing_bp.route('/seo/new', methods=['GET', 'POST'])
@admin_marketing_bp.route('/seo/<int:page_id>/edit', methods=['GET', 'POST'])
@require_admin
def seo_page_form(page_id: int = None) -> Union[str, Response]:
    session = get_session()
    page = None
    if page_id is not None:
        page = session.get(SeoPage, page_id)
        if not page:
            abort(404)

    form = SeoPageForm(obj=page)
    if form.validate_on_submit():
        is_new = page is None
        if is_new:
            page = SeoPage()
            session.add(page)
        populate(form, page)

        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            flash(unique_violation_message(e, 'SEO page'), 'danger')
            return render_template('admin/marketing/seo_page_form.html', form=form,
                                   page=None if is_new else page), 400

        invalidate_seo_cache()
        flash(f'SEO settings for {page.page_path} saved.', 'success')
        return redirect(url_for('admin_marketing.seo_pages'))

    return render_template('admin/marketing/seo_page_form.html', form=form, page=page)


@admin_marketing_bp.route('/seo/<int:page_id>/delete', methods=['POST'])
@require_admin
def seo_page_delete(page_id: int) -> Response:
    session = get_session()
    page = session.get(SeoPage, page_id)
    if not page:
        abort(404)
    path = page.page_path
    session.delete(page)
    session.commit()
    invalidate_seo_cache()
    flash(f'SEO settings for {path} deleted.', 'success')
    return redirect(url_for('admin_marketing.seo_pages'))
