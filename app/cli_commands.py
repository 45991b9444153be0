"""
Flask CLI commands for store management.

Commands:
- flask init-db: Create all tables
- flask create-admin: Create (or promote) an admin profile
- flask seed-catalog: Load a small demo catalog
"""

import click
import re
from decimal import Decimal
from app.database import db_session, create_all
from app.models import (
    UserProfile, UserRole, Category, Tag, Product, ProductVariant, ShippingMethod, TaxRate
)
from app.utils.text import slugify

DEMO_CATALOG = [
    {
        'category': 'Nose Rings',
        'name': 'Celestial Nose Ring',
        'price': '24.00',
        'featured': True,
        'tags': ['Handmade', 'Bestseller'],
        'variants': [
            ('LUM-NR-001-SS', 'Sterling Silver', '24.00', 12, {'material': 'Sterling Silver', 'gauge': '20g'}),
            ('LUM-NR-001-GF', 'Gold Filled', '32.00', 6, {'material': '14k Gold Filled', 'gauge': '20g'}),
        ],
    },
    {
        'category': 'Earrings',
        'name': 'Moonstone Drop Earrings',
        'price': '45.00',
        'featured': True,
        'tags': ['Handmade', 'Gemstone'],
        'variants': [
            ('LUM-ER-014-MS', 'Moonstone', '45.00', 4, {'material': 'Sterling Silver', 'gemstone': 'Moonstone'}),
        ],
    },
    {
        'category': 'Rings',
        'name': 'Hammered Stacking Ring',
        'price': '18.00',
        'featured': False,
        'tags': ['Handmade'],
        'variants': [
            ('LUM-RG-007-M', 'Size M', '18.00', 10, {'material': 'Sterling Silver', 'size': 'M'}),
            ('LUM-RG-007-P', 'Size P', '18.00', 3, {'material': 'Sterling Silver', 'size': 'P'}),
        ],
    },
]


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--name', default='', help='Full name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    def create_admin(email, name, password):
        """Create an admin profile, or promote an existing customer."""
        email = email.strip().lower()
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            click.echo(click.style('Invalid email. Use the format user@example.com', fg='red'))
            return

        if len(password) < 8:
            click.echo(click.style('Password must be at least 8 characters.', fg='red'))
            return

        try:
            user = db_session.query(UserProfile).filter_by(email=email).first()
            created = user is None
            if created:
                user = UserProfile(email=email, full_name=name or None)
                db_session.add(user)
            user.role = UserRole.ADMIN.value
            user.active = True
            user.set_password(password)
            db_session.commit()
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Could not create admin: {e}', fg='red'))
            return

        verb = 'created' if created else 'promoted'
        click.echo(click.style(f'Admin {verb}: {email} (id {user.id})', fg='green', bold=True))
        click.echo('Sign in at /account/login')

    @app.cli.command('seed-catalog')
    def seed_catalog():
        """Load demo categories, products, shipping methods and UK VAT. Safe to re-run."""
        try:
            tags = {}
            for entry in DEMO_CATALOG:
                category = db_session.query(Category).filter_by(slug=slugify(entry['category'])).first()
                if category is None:
                    category = Category(name=entry['category'], slug=slugify(entry['category']))
                    db_session.add(category)

                product_tags = []
                for tag_name in entry['tags']:
                    tag = tags.get(tag_name) or db_session.query(Tag).filter_by(slug=slugify(tag_name)).first()
                    if tag is None:
                        tag = Tag(name=tag_name, slug=slugify(tag_name))
                        db_session.add(tag)
                    tags[tag_name] = tag
                    product_tags.append(tag)

                slug = slugify(entry['name'])
                if db_session.query(Product).filter_by(slug=slug).first():
                    continue
                product = Product(
                    name=entry['name'],
                    slug=slug,
                    base_price=Decimal(entry['price']),
                    category=category,
                    is_featured=entry['featured'],
                    tags=product_tags,
                )
                for sku, variant_name, price, stock, attributes in entry['variants']:
                    product.variants.append(ProductVariant(
                        sku=sku, name=variant_name, price=Decimal(price), stock_quantity=stock, **attributes
                    ))
                db_session.add(product)
                db_session.flush()

            if not db_session.query(ShippingMethod).count():
                db_session.add_all([
                    ShippingMethod(name='Royal Mail 2nd Class', carrier='Royal Mail', base_cost=Decimal('4.99'),
                                   free_shipping_threshold=Decimal('50.00'), estimated_delivery_days_min=3,
                                   estimated_delivery_days_max=5, is_tracked=False, sort_order=1),
                    ShippingMethod(name='Royal Mail Tracked 24', carrier='Royal Mail', base_cost=Decimal('9.99'),
                                   estimated_delivery_days_min=1, estimated_delivery_days_max=2,
                                   is_tracked=True, sort_order=2),
                ])
            if not db_session.query(TaxRate).count():
                db_session.add(TaxRate(name='UK VAT', country='GB', tax_class='standard', rate=Decimal('20.000')))

            db_session.commit()
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Seeding failed: {e}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Demo catalog loaded.', fg='green'))
