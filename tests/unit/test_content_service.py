"""
Unit tests for blog post and CMS page preparation.
"""
from datetime import datetime, timezone

import pytest

from app.exceptions import BusinessLogicError
from app.models import BlogPost, ContentPage
from app.services import content_service
from app.services.content_service import (
    POST_REQUIRED_MESSAGE, PAGE_REQUIRED_MESSAGE, normalize_tags, prepare_post, prepare_page
)

LAUNCH = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestNormalizeTags:

    def test_trims_and_drops_duplicates(self):
        assert normalize_tags('gold, care,Gold , ') == 'gold, care'

    def test_empty_is_none(self):
        assert normalize_tags(' , ') is None
        assert normalize_tags(None) is None


class TestPreparePost:

    def test_slug_from_title(self):
        post = prepare_post(BlogPost(title='Caring for Silver', content='<p>Polish gently.</p>'))
        assert post.slug == 'caring-for-silver'

    def test_typed_slug_is_cleaned(self):
        post = prepare_post(BlogPost(title='Care', slug='Silver Care Tips!', content='Body'))
        assert post.slug == 'silver-care-tips'

    @pytest.mark.parametrize('fields', [
        {'title': '', 'content': 'Body'},
        {'title': 'Care', 'content': '   '},
        {'title': '!!!', 'slug': '', 'content': 'Body'},
    ])
    def test_required_fields(self, fields):
        with pytest.raises(BusinessLogicError) as exc:
            prepare_post(BlogPost(**fields))
        assert exc.value.message == POST_REQUIRED_MESSAGE

    def test_draft_has_no_publish_date(self):
        post = prepare_post(BlogPost(title='Draft', content='Body', is_published=False))
        assert post.published_at is None

    def test_first_publish_is_stamped_and_kept(self):
        post = prepare_post(BlogPost(title='News', content='Body', is_published=True), now=LAUNCH)
        assert post.published_at == LAUNCH

        later = datetime(2026, 4, 1, tzinfo=timezone.utc)
        prepare_post(post, now=later)
        assert post.published_at == LAUNCH


class TestPreparePage:

    def test_slug_from_title(self):
        assert prepare_page(ContentPage(title='Gift Wrapping')).slug == 'gift-wrapping'

    def test_title_required(self):
        with pytest.raises(BusinessLogicError) as exc:
            prepare_page(ContentPage(title=' ', slug='gifts'))
        assert exc.value.message == PAGE_REQUIRED_MESSAGE


class TestQueries:

    def test_published_posts_filter_by_category(self, session):
        session.add_all([
            BlogPost(title='Care', slug='care', content='x', category='Guides', is_published=True, published_at=LAUNCH),
            BlogPost(title='Studio', slug='studio', content='x', category='News', is_published=True, published_at=LAUNCH),
            BlogPost(title='Draft', slug='draft', content='x', category='Hidden', is_published=False),
        ])
        session.commit()

        assert [p.slug for p in content_service.published_posts(session, 'Guides')] == ['care']
        assert content_service.blog_categories(session) == ['Guides', 'News']
        assert content_service.published_post(session, 'draft') is None

    def test_admin_search_covers_tags(self, session):
        session.add_all([
            BlogPost(title='Care', slug='care', content='x', tags='silver, polish'),
            BlogPost(title='Studio', slug='studio', content='x'),
        ])
        session.commit()
        assert [p.slug for p in content_service.list_posts(session, 'polish')] == ['care']

    def test_unpublished_page_not_served(self, session):
        session.add(ContentPage(title='Gifts', slug='gifts', is_published=False))
        session.commit()
        assert content_service.published_page(session, 'gifts') is None
        assert [p.slug for p in content_service.list_pages(session)] == ['gifts']
