"""Models package - exports all SQLAlchemy models."""
# Accounts
from app.models.user_profile import UserProfile, UserRole

# Catalog
from app.models.category import Category
from app.models.tag import Tag, product_tag
from app.models.product import Product
from app.models.product_variant import ProductVariant
from app.models.stock_transaction import StockTransaction, StockTransactionType

# Orders
from app.models.order import Order, OrderStatus, PaymentStatus
from app.models.order_item import OrderItem
from app.models.return_request import ReturnRequest, ReturnItem, ReturnStatus

# Marketing
from app.models.promotion import Promotion, PromotionType
from app.models.banner import Banner, BANNER_POSITIONS
from app.models.email_campaign import EmailCampaign, CampaignStatus
from app.models.seo_page import SeoPage

# Content
from app.models.blog_post import BlogPost
from app.models.content_page import ContentPage
from app.models.product_review import ProductReview

# Settings
from app.models.shipping_method import ShippingMethod
from app.models.tax_rate import TaxRate

__all__ = [
    'UserProfile', 'UserRole',
    'Category', 'Tag', 'product_tag', 'Product', 'ProductVariant',
    'StockTransaction', 'StockTransactionType',
    'Order', 'OrderStatus', 'PaymentStatus', 'OrderItem',
    'ReturnRequest', 'ReturnItem', 'ReturnStatus',
    'Promotion', 'PromotionType', 'Banner', 'BANNER_POSITIONS',
    'EmailCampaign', 'CampaignStatus', 'SeoPage',
    'BlogPost', 'ContentPage', 'ProductReview',
    'ShippingMethod', 'TaxRate',
]
