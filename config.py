"""Configuration module for Flask application."""
import os
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Preferred URL scheme (for url_for with _external=True)
    PREFERRED_URL_SCHEME = os.getenv('PREFERRED_URL_SCHEME', 'http')
    SITE_URL = os.getenv('SITE_URL', 'http://localhost:5000')

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'lumicea')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'lumicea')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'lumicea')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Store
    STORE_NAME = os.getenv('STORE_NAME', 'Lumicea')
    STORE_CURRENCY = os.getenv('STORE_CURRENCY', 'GBP')
    STORE_EMAIL = os.getenv('STORE_EMAIL', 'hello@lumicea.com')
    ORDER_NUMBER_PREFIX = os.getenv('ORDER_NUMBER_PREFIX', 'LUM')

    # Shipping rules
    FREE_SHIPPING_THRESHOLD = Decimal(os.getenv('FREE_SHIPPING_THRESHOLD', '50.00'))
    STANDARD_SHIPPING_COST = Decimal(os.getenv('STANDARD_SHIPPING_COST', '4.99'))
    EXPRESS_SHIPPING_COST = Decimal(os.getenv('EXPRESS_SHIPPING_COST', '9.99'))

    # Payment gateway: 'simulated' or 'http'
    PAYMENT_PROVIDER = os.getenv('PAYMENT_PROVIDER', 'simulated')
    PAYMENT_API_URL = os.getenv('PAYMENT_API_URL', '')
    PAYMENT_API_KEY = os.getenv('PAYMENT_API_KEY', '')
    PAYMENT_TIMEOUT = int(os.getenv('PAYMENT_TIMEOUT', '15'))
    PAYMENT_SIMULATED_DELAY = float(os.getenv('PAYMENT_SIMULATED_DELAY', '0'))

    # Email configuration
    MAIL_SERVER = os.getenv('SMTP_HOST', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('SMTP_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USE_SSL = False
    MAIL_USERNAME = os.getenv('SMTP_USER') or ''
    MAIL_PASSWORD = os.getenv('SMTP_PASSWORD') or ''
    MAIL_DEFAULT_SENDER = (
        os.getenv('SMTP_FROM')
        or MAIL_USERNAME
        or 'no-reply@lumicea.com'
    )
    MAIL_SUPPRESS_SEND = os.getenv('MAIL_SUPPRESS_SEND', 'false').lower() == 'true'

    # Object Storage Configuration (MinIO/S3)
    # Compatible with AWS S3, DigitalOcean Spaces, MinIO
    S3_ENDPOINT = os.getenv('S3_ENDPOINT', 'http://minio:9000')
    S3_ACCESS_KEY = os.getenv('S3_ACCESS_KEY', 'minioadmin')
    S3_SECRET_KEY = os.getenv('S3_SECRET_KEY', 'minioadmin')
    S3_BUCKET = os.getenv('S3_BUCKET', 'uploads')
    S3_REGION = os.getenv('S3_REGION', 'eu-west-2')
    S3_PUBLIC_URL = os.getenv('S3_PUBLIC_URL', 'http://localhost:9000')

    # Upload constraints
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', 5 * 1024 * 1024))  # 5MB
    MAX_IMAGE_DIMENSION = int(os.getenv('MAX_IMAGE_DIMENSION', '1600'))
    ALLOWED_MIME_TYPES = {
        'image/jpeg',
        'image/png',
        'image/gif',
        'image/webp'
    }

    # Redis Cache Configuration
    # Storefront catalog pages are cached; admin writes invalidate
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))  # seconds
    CACHE_CATALOG_TTL = int(os.getenv('CACHE_CATALOG_TTL', '120'))
    CACHE_NAVIGATION_TTL = int(os.getenv('CACHE_NAVIGATION_TTL', '600'))
    CACHE_SEO_TTL = int(os.getenv('CACHE_SEO_TTL', '600'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'lumicea')
