"""
Admin forms for catalog, marketing and settings screens.
"""
from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import (
    BooleanField, DateTimeLocalField, DecimalField, IntegerField, SelectField,
    SelectMultipleField, StringField, TextAreaField
)
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, Regexp

from app.models import BANNER_POSITIONS, PromotionType
from app.services.checkout_service import COUNTRIES
from app.services.inventory_service import MANUAL_TRANSACTION_TYPES
from app.utils.status_badges import ORDER_STATUS, PAYMENT_STATUS, RETURN_STATUS

IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'webp']
DATETIME_FORMAT = '%Y-%m-%dT%H:%M'


def _coerce_optional_int(value):
    if value in (None, '', 'None', '0', 0):
        return None
    return int(value)


def populate(form, obj, exclude=()):
    """
    Copy form data onto a model, skipping CSRF, uploads and ``exclude``.

    Blank strings become None; None is not written to NOT NULL columns so
    their defaults (or current values) stand.
    """
    skip = {'csrf_token', 'image'} | set(exclude)
    columns = obj.__table__.columns
    for field in form:
        if field.name in skip:
            continue
        value = field.data
        if isinstance(value, str):
            value = value.strip() or None
        column = columns.get(field.name)
        if value is None and column is not None and not column.nullable:
            continue
        setattr(obj, field.name, value)
    return obj


class CategoryForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=120)])
    slug = StringField('Slug', validators=[Optional(), Length(max=140)],
                       render_kw={'placeholder': 'Generated from the name when blank'})
    description = TextAreaField('Description', validators=[Optional()], render_kw={'rows': 3})
    parent_id = SelectField('Parent category', coerce=_coerce_optional_int, choices=[], validate_choice=False)
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    image = FileField('Upload image', validators=[FileAllowed(IMAGE_EXTENSIONS, 'Images only')])
    sort_order = IntegerField('Sort order', default=0, validators=[Optional()])
    is_active = BooleanField('Active', default=True)
    seo_title = StringField('SEO title', validators=[Optional(), Length(max=200)])
    seo_description = TextAreaField('SEO description', validators=[Optional()], render_kw={'rows': 2})


class TagForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=80)])
    slug = StringField('Slug', validators=[Optional(), Length(max=100)])
    description = TextAreaField('Description', validators=[Optional()], render_kw={'rows': 2})
    color = StringField('Colour', default='#10105A', validators=[Optional(), Length(max=20)],
                        render_kw={'type': 'color'})
    is_active = BooleanField('Active', default=True)


class ProductForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=200)])
    slug = StringField('Slug', validators=[Optional(), Length(max=220)])
    description = TextAreaField('Description', validators=[Optional()], render_kw={'rows': 5})
    base_price = DecimalField('Base price (£)', places=2, default=0,
                              validators=[InputRequired(message='Base price is required'),
                                          NumberRange(min=0, message='Price cannot be negative')])
    category_id = SelectField('Category', coerce=_coerce_optional_int, choices=[], validate_choice=False)
    tag_ids = SelectMultipleField('Tags', coerce=int, choices=[], validate_choice=False)
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    image = FileField('Upload image', validators=[FileAllowed(IMAGE_EXTENSIONS, 'Images only')])
    is_active = BooleanField('Active', default=True)
    is_featured = BooleanField('Featured', default=False)
    meta_title = StringField('Meta title', validators=[Optional(), Length(max=200)])
    meta_description = TextAreaField('Meta description', validators=[Optional()], render_kw={'rows': 2})


class VariantForm(FlaskForm):
    sku = StringField('SKU', validators=[DataRequired(message='SKU is required'), Length(max=80)],
                      render_kw={'placeholder': 'e.g. LUM-NR-001'})
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=200)])
    price = DecimalField('Price (£)', places=2,
                         validators=[InputRequired(message='Price is required'),
                                     NumberRange(min=0, message='Price cannot be negative')])
    cost_price = DecimalField('Cost price (£)', places=2, default=0,
                              validators=[Optional(), NumberRange(min=0)])
    stock_quantity = IntegerField('Stock', default=0, validators=[Optional(), NumberRange(min=0)])
    low_stock_threshold = IntegerField('Low stock threshold', default=5, validators=[Optional(), NumberRange(min=0)])
    material = StringField('Material', validators=[Optional(), Length(max=80)])
    gemstone = StringField('Gemstone', validators=[Optional(), Length(max=80)])
    size = StringField('Size', validators=[Optional(), Length(max=40)])
    gauge = StringField('Gauge', validators=[Optional(), Length(max=40)])
    is_active = BooleanField('Active', default=True)


class BannerForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(message='Title is required'), Length(max=200)])
    subtitle = StringField('Subtitle', validators=[Optional(), Length(max=300)])
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    image = FileField('Upload image', validators=[FileAllowed(IMAGE_EXTENSIONS, 'Images only')])
    mobile_image_url = StringField('Mobile image URL', validators=[Optional(), Length(max=500)])
    link_url = StringField('Link URL', validators=[Optional(), Length(max=500)])
    link_text = StringField('Link text', validators=[Optional(), Length(max=80)])
    position = SelectField('Position', choices=[(p, p.title()) for p in BANNER_POSITIONS], default='hero')
    target_page = StringField('Target page', validators=[Optional(), Length(max=200)],
                              render_kw={'placeholder': '/ or /shop'})
    target_category_id = SelectField('Target category', coerce=_coerce_optional_int, choices=[],
                                     validate_choice=False)
    background_color = StringField('Background colour', validators=[Optional(), Length(max=20)])
    text_color = StringField('Text colour', validators=[Optional(), Length(max=20)])
    button_color = StringField('Button colour', validators=[Optional(), Length(max=20)])
    starts_at = DateTimeLocalField('Starts at', format=DATETIME_FORMAT, validators=[Optional()])
    ends_at = DateTimeLocalField('Ends at', format=DATETIME_FORMAT, validators=[Optional()])
    is_active = BooleanField('Active', default=True)
    sort_order = IntegerField('Sort order', default=0, validators=[Optional()])


class PromotionForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=150)])
    code = StringField('Code', validators=[Optional(), Length(max=40)],
                       render_kw={'placeholder': 'SUMMER20'})
    description = TextAreaField('Description', validators=[Optional()], render_kw={'rows': 2})
    type = SelectField('Type', choices=[
        (PromotionType.PERCENTAGE.value, 'Percentage off'),
        (PromotionType.FIXED_AMOUNT.value, 'Fixed amount off'),
        (PromotionType.FREE_SHIPPING.value, 'Free shipping'),
        (PromotionType.BUY_X_GET_Y.value, 'Buy X get 1'),
    ], default=PromotionType.PERCENTAGE.value)
    value = DecimalField('Value', places=2, default=0, validators=[Optional(), NumberRange(min=0)])
    minimum_order_amount = DecimalField('Minimum order (£)', places=2, validators=[Optional(), NumberRange(min=0)])
    maximum_discount_amount = DecimalField('Maximum discount (£)', places=2,
                                           validators=[Optional(), NumberRange(min=0)])
    usage_limit = IntegerField('Usage limit', validators=[Optional(), NumberRange(min=1)])
    usage_limit_per_customer = IntegerField('Usage limit per customer', validators=[Optional(), NumberRange(min=1)])
    starts_at = DateTimeLocalField('Starts at', format=DATETIME_FORMAT, validators=[Optional()])
    ends_at = DateTimeLocalField('Ends at', format=DATETIME_FORMAT, validators=[Optional()])
    is_active = BooleanField('Active', default=True)


class CampaignForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=150)])
    subject = StringField('Subject', validators=[DataRequired(message='Subject is required'), Length(max=200)])
    content = TextAreaField('Content (HTML)', validators=[DataRequired(message='Content is required')],
                            render_kw={'rows': 12, 'placeholder': '<p>Hi {{first_name}},</p>'})
    scheduled_at = DateTimeLocalField('Schedule for', format=DATETIME_FORMAT, validators=[Optional()])


class SendTestEmailForm(FlaskForm):
    email = StringField('Send test to', validators=[
        DataRequired(message='Email is required'),
        Regexp(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', message='Invalid email'),
    ])


class ShippingMethodForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=120)])
    description = TextAreaField('Description', validators=[Optional()], render_kw={'rows': 2})
    carrier = StringField('Carrier', validators=[Optional(), Length(max=80)],
                          render_kw={'placeholder': 'Royal Mail'})
    service_code = StringField('Service code', validators=[Optional(), Length(max=40)])
    base_cost = DecimalField('Base cost (£)', places=2, default=0,
                             validators=[InputRequired(message='Base cost is required'), NumberRange(min=0)])
    cost_per_kg = DecimalField('Cost per kg (£)', places=2, validators=[Optional(), NumberRange(min=0)])
    free_shipping_threshold = DecimalField('Free over (£)', places=2, validators=[Optional(), NumberRange(min=0)])
    estimated_delivery_days_min = IntegerField('Min delivery days', validators=[Optional(), NumberRange(min=0)])
    estimated_delivery_days_max = IntegerField('Max delivery days', validators=[Optional(), NumberRange(min=0)])
    max_weight = DecimalField('Max weight (kg)', places=2, validators=[Optional(), NumberRange(min=0)])
    requires_signature = BooleanField('Requires signature')
    is_tracked = BooleanField('Tracked')
    is_active = BooleanField('Active', default=True)
    sort_order = IntegerField('Sort order', default=0, validators=[Optional()])

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators):
            return False
        lo, hi = self.estimated_delivery_days_min.data, self.estimated_delivery_days_max.data
        if lo is not None and hi is not None and lo > hi:
            self.estimated_delivery_days_max.errors.append('Max days must be at least min days')
            return False
        return True


class TaxRateForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=120)],
                       render_kw={'placeholder': 'UK VAT'})
    country = SelectField('Country', choices=COUNTRIES, default='GB')
    state_province = StringField('State / Province', validators=[Optional(), Length(max=100)])
    tax_class = SelectField('Tax class', choices=[
        ('standard', 'Standard'), ('reduced', 'Reduced'), ('zero', 'Zero')
    ], default='standard')
    rate = DecimalField('Rate (%)', places=3,
                        validators=[InputRequired(message='Rate is required'),
                                    NumberRange(min=0, max=100, message='Rate must be between 0 and 100')])
    is_active = BooleanField('Active', default=True)


class SeoPageForm(FlaskForm):
    page_path = StringField('Page path', validators=[DataRequired(message='Page path is required'), Length(max=255)],
                            render_kw={'placeholder': '/about'})
    meta_title = StringField('Meta title', validators=[Optional(), Length(max=200)])
    meta_description = TextAreaField('Meta description', validators=[Optional()], render_kw={'rows': 2})
    meta_keywords = StringField('Meta keywords', validators=[Optional(), Length(max=500)])
    og_title = StringField('Open Graph title', validators=[Optional(), Length(max=200)])
    og_description = TextAreaField('Open Graph description', validators=[Optional()], render_kw={'rows': 2})
    og_image = StringField('Open Graph image', validators=[Optional(), Length(max=500)])
    twitter_card = SelectField('Twitter card', choices=[
        ('summary', 'Summary'), ('summary_large_image', 'Summary with large image')
    ], default='summary_large_image')

    def validate_page_path(self, field):
        if field.data and not field.data.startswith('/'):
            field.data = '/' + field.data


class BlogPostForm(FlaskForm):
    title = StringField('Title', validators=[Optional(), Length(max=200)])
    slug = StringField('Slug', validators=[Optional(), Length(max=220)],
                       render_kw={'placeholder': 'Generated from the title when blank'})
    excerpt = TextAreaField('Excerpt', validators=[Optional()], render_kw={'rows': 2})
    content = TextAreaField('Content (HTML)', validators=[Optional()], render_kw={'rows': 14})
    category = StringField('Category', validators=[Optional(), Length(max=80)])
    tags = StringField('Tags', validators=[Optional(), Length(max=500)],
                       render_kw={'placeholder': 'Comma separated'})
    featured_image = StringField('Featured image URL', validators=[Optional(), Length(max=500)])
    image = FileField('Upload featured image', validators=[FileAllowed(IMAGE_EXTENSIONS, 'Images only')])
    meta_title = StringField('Meta title', validators=[Optional(), Length(max=200)])
    meta_description = TextAreaField('Meta description', validators=[Optional()], render_kw={'rows': 2})
    is_published = BooleanField('Published', default=False)


class ContentPageForm(FlaskForm):
    title = StringField('Title', validators=[Optional(), Length(max=200)])
    slug = StringField('Slug', validators=[Optional(), Length(max=220)],
                       render_kw={'placeholder': 'Generated from the title when blank'})
    content = TextAreaField('Content (HTML)', validators=[Optional()], render_kw={'rows': 14})
    meta_title = StringField('Meta title', validators=[Optional(), Length(max=200)])
    meta_description = TextAreaField('Meta description', validators=[Optional()], render_kw={'rows': 2})
    is_published = BooleanField('Published', default=True)


class StockAdjustmentForm(FlaskForm):
    quantity_change = IntegerField('Quantity change', validators=[DataRequired(message='Enter a non-zero quantity')])
    transaction_type = SelectField('Type', choices=[(t, t.title()) for t in MANUAL_TRANSACTION_TYPES],
                                   default='restock')
    notes = TextAreaField('Notes', validators=[Optional()], render_kw={'rows': 2})


class OrderStatusForm(FlaskForm):
    status = SelectField('Status', choices=[(k, v.label) for k, v in ORDER_STATUS.items()])
    payment_status = SelectField('Payment status', choices=[(k, v.label) for k, v in PAYMENT_STATUS.items()])


class ReturnStatusForm(FlaskForm):
    status = SelectField('Status', choices=[(k, v.label) for k, v in RETURN_STATUS.items()])
    notes = TextAreaField('Notes', validators=[Optional()], render_kw={'rows': 2})
