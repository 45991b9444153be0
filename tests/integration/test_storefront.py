"""
Integration tests for the public storefront: pages, catalog and bag.
"""

from datetime import datetime, timezone

import pytest

from app.models import BlogPost, ContentPage, ProductReview
from app.services.cart_service import CART_SESSION_KEY


def _cart_items(client):
    with client.session_transaction() as sess:
        return (sess.get(CART_SESSION_KEY) or {}).get('items', [])


class TestPages:

    def test_home_shows_featured(self, client, product):
        response = client.get('/')
        assert response.status_code == 200
        assert b'Aurora Hoops' in response.data

    @pytest.mark.parametrize('page', ['about', 'care', 'faq', 'shipping', 'contact',
                                      'size-guide', 'privacy', 'terms', 'cookies'])
    def test_info_pages(self, client, page):
        assert client.get(f'/{page}').status_code == 200

    def test_unknown_page_is_404(self, client):
        assert client.get('/no-such-page').status_code == 404

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'healthy', 'database': 'ok'}

    def test_cache_health_when_disabled(self, client):
        data = client.get('/health/cache').get_json()
        assert data['enabled'] is False
        assert data['status'] == 'ok'


class TestCatalog:

    def test_catalog_lists_products(self, client, product):
        response = client.get('/shop/')
        assert response.status_code == 200
        assert b'Aurora Hoops' in response.data

    def test_category_page(self, client, product, category):
        response = client.get(f'/shop/category/{category.slug}')
        assert response.status_code == 200
        assert b'Aurora Hoops' in response.data

    def test_unknown_category(self, client):
        assert client.get('/shop/category/missing').status_code == 404

    def test_search_filters(self, client, product):
        response = client.get('/shop/?q=bracelet')
        assert response.status_code == 200
        assert b'Aurora Hoops' not in response.data

    def test_product_detail(self, client, product):
        response = client.get('/shop/product/aurora-hoops')
        assert response.status_code == 200
        assert b'AUR-HOOP-SLV' in response.data or b'Sterling silver' in response.data

    def test_inactive_product_hidden(self, client, session, product):
        product.is_active = False
        session.commit()
        assert client.get('/shop/product/aurora-hoops').status_code == 404


class TestCart:

    def test_add_to_cart(self, client, variant):
        response = client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 2})

        assert response.status_code == 302
        items = _cart_items(client)
        assert len(items) == 1
        assert items[0]['quantity'] == 2
        assert items[0]['variant_id'] == variant.id

    def test_add_returns_to_local_next(self, client, variant):
        response = client.post('/shop/cart/add', data={
            'variant_id': variant.id, 'quantity': 1, 'next': '/shop/product/aurora-hoops',
        })
        assert response.location.endswith('/shop/product/aurora-hoops')

    @pytest.mark.parametrize('next_url', [
        'https://evil.example/phish',
        '//evil.example/phish',
        '/\\evil.example/phish',
        'javascript:alert(1)',
    ])
    def test_add_ignores_offsite_next(self, client, variant, next_url):
        response = client.post('/shop/cart/add', data={
            'variant_id': variant.id, 'quantity': 1, 'next': next_url,
        })

        assert response.status_code == 302
        assert 'evil.example' not in response.location
        assert response.location.endswith('/shop/cart')

    def test_add_htmx_returns_json(self, client, variant):
        response = client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1},
                               headers={'HX-Request': 'true'})

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'item_count': 1, 'subtotal': '24.00'}

    def test_add_more_than_stock_is_refused(self, client, variant):
        client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 11})
        assert _cart_items(client) == []

    def test_add_unknown_variant(self, client, session):
        client.post('/shop/cart/add', data={'variant_id': 9999, 'quantity': 1})
        assert _cart_items(client) == []

    def test_update_quantity_clamped_to_stock(self, client, variant):
        client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        item_id = _cart_items(client)[0]['id']

        client.post(f'/shop/cart/update/{item_id}', data={'quantity': 50})

        assert _cart_items(client)[0]['quantity'] == 10

    def test_update_to_zero_removes(self, client, variant):
        client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        item_id = _cart_items(client)[0]['id']

        client.post(f'/shop/cart/update/{item_id}', data={'quantity': 0})

        assert _cart_items(client) == []

    def test_remove(self, client, variant):
        client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        item_id = _cart_items(client)[0]['id']

        response = client.post(f'/shop/cart/remove/{item_id}')

        assert response.status_code == 302
        assert _cart_items(client) == []

    def test_cart_page_shows_totals(self, client, variant):
        client.post('/shop/cart/add', data={'variant_id': variant.id, 'quantity': 1})
        response = client.get('/shop/cart')
        assert response.status_code == 200
        assert '£24.00'.encode() in response.data


class TestBlogAndPages:

    @pytest.fixture
    def posts(self, session):
        session.add_all([
            BlogPost(title='Caring for Silver', slug='caring-for-silver', content='<p>Polish <em>gently</em>.</p>',
                     category='Guides', tags='silver, care', is_published=True,
                     published_at=datetime(2026, 3, 1, tzinfo=timezone.utc)),
            BlogPost(title='Upcoming Collection', slug='upcoming-collection', content='Soon', is_published=False),
        ])
        session.commit()

    def test_blog_lists_published_posts(self, client, posts):
        response = client.get('/blog')
        assert response.status_code == 200
        assert b'Caring for Silver' in response.data
        assert b'Upcoming Collection' not in response.data

    def test_blog_category_filter(self, client, posts):
        assert b'Caring for Silver' not in client.get('/blog?category=News').data
        assert b'Caring for Silver' in client.get('/blog?category=Guides').data

    def test_post_renders_html_content(self, client, posts):
        response = client.get('/blog/caring-for-silver')
        assert response.status_code == 200
        assert b'Polish <em>gently</em>.' in response.data
        assert b'#silver' in response.data

    def test_draft_post_is_404(self, client, posts):
        assert client.get('/blog/upcoming-collection').status_code == 404

    def test_content_page(self, client, session):
        session.add_all([
            ContentPage(title='Gift Wrapping', slug='gift-wrapping', content='<p>Every order is wrapped.</p>'),
            ContentPage(title='Trade', slug='trade', content='Wholesale', is_published=False),
        ])
        session.commit()

        response = client.get('/pages/gift-wrapping')
        assert response.status_code == 200
        assert b'<p>Every order is wrapped.</p>' in response.data
        assert client.get('/pages/trade').status_code == 404
        assert client.get('/pages/nothing-here').status_code == 404


class TestReviews:

    def test_submit_requires_login(self, client, product):
        response = client.post('/shop/product/aurora-hoops/reviews',
                               data={'rating': 5, 'content': 'Lovely'}, follow_redirects=False)
        assert response.status_code == 302
        assert '/account/login' in response.location

    def test_submit_and_show_on_product_page(self, customer_client, session, product):
        response = customer_client.post('/shop/product/aurora-hoops/reviews', data={
            'rating': 4, 'title': 'Gorgeous', 'content': 'Wear them every day.', 'variant_name': 'Sterling silver',
        }, follow_redirects=False)
        assert response.status_code == 302
        assert response.location.endswith('/shop/product/aurora-hoops#reviews')

        page = customer_client.get('/shop/product/aurora-hoops').data
        assert b'Wear them every day.' in page
        assert b'Jane S.' in page
        assert b'"aggregateRating"' in page
        # Already reviewed, so the form is gone
        assert b'name="content"' not in page

    def test_invalid_rating_refused(self, customer_client, session, product):
        customer_client.post('/shop/product/aurora-hoops/reviews', data={'rating': 9, 'content': 'Odd'})
        assert session.query(ProductReview).count() == 0
        with customer_client.session_transaction() as sess:
            assert ('danger', 'Please choose a rating from 1 to 5 stars') in sess['_flashes']

    def test_anonymous_sees_sign_in_prompt(self, client, product):
        page = client.get('/shop/product/aurora-hoops').data
        assert b'name="content"' not in page
        assert b'to write a review' in page

    def test_helpful_counted_once_per_session(self, client, session, product, customer):
        review = ProductReview(product_id=product.id, user_id=customer.id, rating=5, content='Perfect')
        session.add(review)
        session.commit()

        headers = {'HX-Request': 'true'}
        first = client.post(f'/shop/reviews/{review.id}/helpful', headers=headers)
        second = client.post(f'/shop/reviews/{review.id}/helpful', headers=headers)
        assert first.get_json() == {'status': 'ok', 'helpful_count': 1}
        assert second.get_json() == {'status': 'ok', 'helpful_count': 1}

    def test_hidden_review_not_shown(self, client, session, product, customer):
        session.add(ProductReview(product_id=product.id, user_id=customer.id, rating=1,
                                  content='Spam link', is_approved=False))
        session.commit()
        assert b'Spam link' not in client.get('/shop/product/aurora-hoops').data
