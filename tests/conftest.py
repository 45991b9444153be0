import os
import tempfile
from decimal import Decimal

import pytest

# Test settings must be in place before config.py is imported
_DB_DIR = tempfile.mkdtemp(prefix='lumicea-tests-')
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ['CACHE_ENABLED'] = 'false'
os.environ['MAIL_SUPPRESS_SEND'] = 'true'
os.environ['SMTP_USER'] = ''
os.environ['FLASK_ENV'] = 'testing'
os.environ['PAYMENT_PROVIDER'] = 'simulated'
os.environ['PAYMENT_SIMULATED_DELAY'] = '0'
os.environ['SITE_URL'] = 'http://localhost'

from app import create_app
from app import database
from app.database import Base, create_all
from app.models import (
    UserProfile, UserRole, Category, Product, ProductVariant
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    create_all()
    return app


@pytest.fixture(autouse=True)
def _clean_tables(app):
    """Every test starts with empty tables."""
    yield
    database.db_session.remove()
    with database.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session for arranging and asserting."""
    with app.app_context():
        session = database.get_session()
        yield session
        session.rollback()


def _make_user(session, email, role, password='password123', full_name='Test User', opt_in=True):
    user = UserProfile(
        email=email,
        full_name=full_name,
        role=role,
        active=True,
        marketing_opt_in=opt_in,
    )
    user.set_password(password)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def customer(session):
    return _make_user(session, 'jane@example.com', UserRole.CUSTOMER.value, full_name='Jane Smith')


@pytest.fixture(scope='function')
def admin_user(session):
    return _make_user(session, 'admin@lumicea.com', UserRole.ADMIN.value, full_name='Store Admin')


def _login(client, user):
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
    return client


@pytest.fixture(scope='function')
def customer_client(client, customer):
    """Test client signed in as a customer."""
    return _login(client, customer)


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    """Test client signed in as an admin."""
    return _login(client, admin_user)


@pytest.fixture(scope='function')
def category(session):
    category = Category(name='Earrings', slug='earrings', description='Handmade earrings', sort_order=1)
    session.add(category)
    session.commit()
    return category


@pytest.fixture(scope='function')
def product(session, category):
    """Active product with one silver variant, 10 in stock at £24.00."""
    product = Product(
        name='Aurora Hoops',
        slug='aurora-hoops',
        description='Sterling silver hoops with a brushed finish.',
        base_price=Decimal('24.00'),
        category_id=category.id,
        is_active=True,
        is_featured=True,
    )
    product.variants.append(ProductVariant(
        sku='AUR-HOOP-SLV',
        name='Sterling silver',
        price=Decimal('24.00'),
        stock_quantity=10,
        low_stock_threshold=3,
        material='Sterling silver',
    ))
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def variant(product):
    return product.variants[0]
