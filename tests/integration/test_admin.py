"""
Integration tests for the admin back-office.
"""
from decimal import Decimal

import pytest

from app.models import (
    Category, Order, OrderItem, Product, ProductVariant, Promotion, ReturnRequest,
    SeoPage, ShippingMethod, StockTransaction, TaxRate, Banner, EmailCampaign,
    BlogPost, ContentPage, ProductReview
)


@pytest.fixture
def order(session, customer, variant):
    order = Order(
        order_number='LUM-200001', user_id=customer.id, customer_email=customer.email,
        status='processing', payment_status='paid', subtotal=Decimal('48.00'),
        shipping_cost=Decimal('4.99'), total_amount=Decimal('52.99'),
        shipping_first_name='Jane', shipping_last_name='Smith', shipping_address1='1 High Street',
        shipping_city='Bath', shipping_state='Somerset', shipping_postal_code='BA1 1AA',
    )
    order.items.append(OrderItem(
        product_id=variant.product_id, variant_id=variant.id, product_name='Aurora Hoops',
        variant_name='Sterling silver', quantity=2, unit_price=Decimal('24.00'),
        total_price=Decimal('48.00'),
    ))
    session.add(order)
    session.commit()
    return order


class TestAccessControl:

    @pytest.mark.parametrize('path', ['/admin/', '/admin/orders', '/admin/catalog/products',
                                      '/admin/marketing/promotions', '/admin/settings/'])
    def test_anonymous_redirected_to_login(self, client, path):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 302
        assert '/account/login' in response.location

    def test_customer_forbidden(self, customer_client):
        assert customer_client.get('/admin/').status_code == 403
        assert customer_client.get('/admin/catalog/products').status_code == 403

    def test_admin_pages_render(self, admin_client, product, order):
        for path in ['/admin/', '/admin/orders', f'/admin/orders/{order.id}', '/admin/returns',
                     '/admin/inventory', '/admin/customers', '/admin/catalog/products',
                     '/admin/catalog/categories', '/admin/catalog/tags',
                     '/admin/marketing/promotions', '/admin/marketing/banners',
                     '/admin/marketing/campaigns', '/admin/marketing/seo', '/admin/settings/',
                     '/admin/content/blog', '/admin/content/blog/new', '/admin/content/pages',
                     '/admin/content/pages/new', '/admin/content/reviews']:
            assert admin_client.get(path).status_code == 200, path


class TestOrders:

    def test_search_orders(self, admin_client, order):
        response = admin_client.get('/admin/orders?q=200001')
        assert b'LUM-200001' in response.data

        response = admin_client.get('/admin/orders?status=delivered')
        assert b'LUM-200001' not in response.data

    def test_update_status(self, admin_client, session, order):
        response = admin_client.post(f'/admin/orders/{order.id}/status',
                                     data={'status': 'shipped', 'payment_status': 'paid'})
        assert response.status_code == 302

        session.refresh(order)
        assert order.status == 'shipped'

    def test_open_and_process_return(self, admin_client, session, order, variant):
        item = order.items[0]
        response = admin_client.post(f'/admin/orders/{order.id}/returns',
                                     data={'reason': 'Too small', f'qty_{item.id}': 1})
        assert response.status_code == 302

        return_request = session.query(ReturnRequest).one()
        assert return_request.return_number == 'RET-000001'
        assert return_request.refund_amount == Decimal('24.00')

        admin_client.post(f'/admin/returns/{return_request.id}/status', data={'status': 'processed'})

        session.refresh(variant)
        assert variant.stock_quantity == 11

    def test_return_requires_reason(self, admin_client, session, order):
        item = order.items[0]
        admin_client.post(f'/admin/orders/{order.id}/returns', data={'reason': '', f'qty_{item.id}': 1})
        assert session.query(ReturnRequest).count() == 0


class TestInventory:

    def test_restock(self, admin_client, session, variant):
        response = admin_client.post(f'/admin/inventory/{variant.id}/adjust', data={
            'quantity_change': 5, 'transaction_type': 'restock', 'notes': 'Workshop batch',
        })
        assert response.status_code == 302

        session.refresh(variant)
        assert variant.stock_quantity == 15
        movement = session.query(StockTransaction).one()
        assert movement.resulting_quantity == 15
        assert movement.notes == 'Workshop batch'

    def test_negative_restock_rejected(self, admin_client, session, variant):
        admin_client.post(f'/admin/inventory/{variant.id}/adjust', data={
            'quantity_change': -2, 'transaction_type': 'restock',
        })
        session.refresh(variant)
        assert variant.stock_quantity == 10

    def test_low_stock_filter(self, admin_client, session, variant):
        response = admin_client.get('/admin/inventory?low_stock=1')
        assert b'AUR-HOOP-SLV' not in response.data

        variant.stock_quantity = 2
        session.commit()
        response = admin_client.get('/admin/inventory?low_stock=1')
        assert b'AUR-HOOP-SLV' in response.data


class TestCatalogAdmin:

    def test_create_category_generates_slug(self, admin_client, session):
        response = admin_client.post('/admin/catalog/categories/new', data={
            'name': 'Nose Rings', 'sort_order': 2, 'is_active': 'y',
        })
        assert response.status_code == 302

        category = session.query(Category).filter_by(name='Nose Rings').one()
        assert category.slug == 'nose-rings'
        assert category.is_active is True

    def test_duplicate_category_slug(self, admin_client, category):
        response = admin_client.post('/admin/catalog/categories/new', data={
            'name': 'Earrings again', 'slug': 'earrings',
        })
        assert response.status_code == 400

    def test_create_product_and_variant(self, admin_client, session, category):
        response = admin_client.post('/admin/catalog/products/new', data={
            'name': 'Luna Studs', 'base_price': '18.50', 'category_id': category.id, 'is_active': 'y',
        })
        assert response.status_code == 302

        product = session.query(Product).filter_by(slug='luna-studs').one()
        assert product.base_price == Decimal('18.50')
        assert product.category_id == category.id

        response = admin_client.post(f'/admin/catalog/products/{product.id}/variants/new', data={
            'sku': 'lun-std-gld', 'name': 'Gold', 'price': '22.00', 'stock_quantity': 4,
            'low_stock_threshold': 2, 'is_active': 'y',
        })
        assert response.status_code == 302

        variant = session.query(ProductVariant).filter_by(product_id=product.id).one()
        assert variant.sku == 'LUN-STD-GLD'
        assert variant.stock_quantity == 4

    def test_product_requires_name(self, admin_client, session):
        response = admin_client.post('/admin/catalog/products/new', data={'base_price': '10'})
        assert response.status_code == 200
        assert session.query(Product).count() == 0

    def test_toggle_and_delete_product(self, admin_client, session, product):
        admin_client.post(f'/admin/catalog/products/{product.id}/toggle-active')
        session.refresh(product)
        assert product.is_active is False

        product_id = product.id
        admin_client.post(f'/admin/catalog/products/{product_id}/delete')
        session.expire_all()
        assert session.get(Product, product_id) is None


class TestMarketingAdmin:

    def test_create_promotion_with_generated_code(self, admin_client, session):
        response = admin_client.post('/admin/marketing/promotions/new', data={
            'name': 'Summer Sale 2024', 'type': 'percentage', 'value': '20', 'is_active': 'y',
        })
        assert response.status_code == 302

        promotion = session.query(Promotion).one()
        assert promotion.code == 'SUMMERSALE'
        assert promotion.value == Decimal('20.00')

    def test_promotion_list_shows_status(self, admin_client, session):
        session.add(Promotion(name='Welcome', code='WELCOME10', type='fixed_amount', value=Decimal('5')))
        session.commit()

        response = admin_client.get('/admin/marketing/promotions')
        assert b'WELCOME10' in response.data
        assert '£5.00'.encode() in response.data
        assert b'Active' in response.data

    def test_create_banner(self, admin_client, session):
        response = admin_client.post('/admin/marketing/banners/new', data={
            'title': 'New Collection', 'position': 'hero', 'link_url': '/shop/',
            'sort_order': 0, 'is_active': 'y',
        })
        assert response.status_code == 302
        assert session.query(Banner).filter_by(title='New Collection').count() == 1

    def test_campaign_create_and_send(self, admin_client, session, monkeypatch, customer):
        from app.services import campaign_service
        sent = []
        monkeypatch.setattr(campaign_service, 'send_email',
                            lambda to, subject, html, text=None: sent.append(to) or True)

        admin_client.post('/admin/marketing/campaigns/new', data={
            'name': 'Launch', 'subject': 'Hello {{first_name}}', 'content': '<p>Hi {{first_name}}</p>',
        })
        campaign = session.query(EmailCampaign).one()
        assert campaign.status == 'draft'

        admin_client.post(f'/admin/marketing/campaigns/{campaign.id}/send')

        session.refresh(campaign)
        assert campaign.status == 'sent'
        assert sent == [customer.email]

    def test_seo_page_path_gets_leading_slash(self, admin_client, session):
        response = admin_client.post('/admin/marketing/seo/new', data={
            'page_path': 'about', 'meta_title': 'About Lumicea', 'twitter_card': 'summary',
        })
        assert response.status_code == 302
        assert session.query(SeoPage).one().page_path == '/about'

    def test_overview_scores_home_page(self, admin_client, product):
        response = admin_client.get('/admin/marketing/')
        assert response.status_code == 200
        assert b'SEO' in response.data

    def test_overview_rejects_missing_page(self, admin_client):
        response = admin_client.get('/admin/marketing/?path=/no-such-page')
        assert response.status_code == 200
        assert b'returned HTTP 404' in response.data


class TestContentAdmin:

    def test_create_post_generates_slug(self, admin_client, session, admin_user):
        response = admin_client.post('/admin/content/blog/new', data={
            'title': 'Caring for Silver', 'content': '<p>Polish gently.</p>',
            'tags': 'silver, care, Silver', 'is_published': 'y',
        })
        assert response.status_code == 302

        post = session.query(BlogPost).one()
        assert post.slug == 'caring-for-silver'
        assert post.tags == 'silver, care'
        assert post.author_id == admin_user.id
        assert post.published_at is not None

    def test_post_requires_title_and_content(self, admin_client, session):
        response = admin_client.post('/admin/content/blog/new', data={'title': '', 'content': 'Body'})
        assert response.status_code == 400
        assert b'Title, slug, and content are required' in response.data
        assert session.query(BlogPost).count() == 0

    def test_duplicate_post_slug(self, admin_client, session):
        session.add(BlogPost(title='Care', slug='care', content='x'))
        session.commit()
        response = admin_client.post('/admin/content/blog/new', data={'title': 'Care', 'content': 'Again'})
        assert response.status_code == 400
        assert session.query(BlogPost).count() == 1

    def test_edit_and_delete_post(self, admin_client, session):
        post = BlogPost(title='Care', slug='care', content='x')
        session.add(post)
        session.commit()

        response = admin_client.post(f'/admin/content/blog/{post.id}/edit', data={
            'title': 'Silver Care', 'slug': 'care', 'content': 'Updated',
        })
        assert response.status_code == 302
        session.refresh(post)
        assert post.title == 'Silver Care'
        assert post.is_published is False

        assert admin_client.get(f'/admin/content/blog/{post.id}/edit').status_code == 200
        admin_client.post(f'/admin/content/blog/{post.id}/delete')
        assert session.query(BlogPost).count() == 0

    def test_create_page(self, admin_client, session, client):
        response = admin_client.post('/admin/content/pages/new', data={
            'title': 'Gift Wrapping', 'content': '<p>Wrapped by hand.</p>', 'is_published': 'y',
        })
        assert response.status_code == 302

        page = session.query(ContentPage).one()
        assert page.slug == 'gift-wrapping'
        assert b'Wrapped by hand.' in client.get('/pages/gift-wrapping').data

    def test_page_requires_title(self, admin_client, session):
        response = admin_client.post('/admin/content/pages/new', data={'title': '', 'slug': 'gifts'})
        assert response.status_code == 400
        assert b'Title and slug are required' in response.data

    def test_hide_and_delete_review(self, admin_client, session, product, customer):
        review = ProductReview(product_id=product.id, user_id=customer.id, rating=2, content='Not for me')
        session.add(review)
        session.commit()

        assert b'Not for me' in admin_client.get('/admin/content/reviews').data
        admin_client.post(f'/admin/content/reviews/{review.id}/toggle')
        session.refresh(review)
        assert review.is_approved is False
        assert b'Not for me' in admin_client.get('/admin/content/reviews?show=hidden').data
        assert b'Not for me' not in admin_client.get('/admin/content/reviews?show=visible').data

        admin_client.post(f'/admin/content/reviews/{review.id}/delete')
        assert session.query(ProductReview).count() == 0


class TestSettingsAdmin:

    def test_create_shipping_method(self, admin_client, session):
        response = admin_client.post('/admin/settings/shipping/new', data={
            'name': 'Royal Mail Tracked 48', 'base_cost': '3.20',
            'estimated_delivery_days_min': 2, 'estimated_delivery_days_max': 3,
            'is_tracked': 'y', 'is_active': 'y', 'sort_order': 0,
        })
        assert response.status_code == 302

        method = session.query(ShippingMethod).one()
        assert method.base_cost == Decimal('3.20')
        assert method.is_tracked is True

    def test_delivery_days_must_be_ordered(self, admin_client, session):
        response = admin_client.post('/admin/settings/shipping/new', data={
            'name': 'Backwards', 'base_cost': '1.00',
            'estimated_delivery_days_min': 5, 'estimated_delivery_days_max': 2,
        })
        assert response.status_code == 200
        assert session.query(ShippingMethod).count() == 0

    def test_create_tax_rate(self, admin_client, session):
        response = admin_client.post('/admin/settings/tax/new', data={
            'name': 'UK VAT', 'country': 'GB', 'tax_class': 'standard', 'rate': '20', 'is_active': 'y',
        })
        assert response.status_code == 302
        assert session.query(TaxRate).one().rate == Decimal('20.000')

    def test_tax_rate_bounds(self, admin_client, session):
        admin_client.post('/admin/settings/tax/new', data={
            'name': 'Too much', 'country': 'GB', 'tax_class': 'standard', 'rate': '120',
        })
        assert session.query(TaxRate).count() == 0
