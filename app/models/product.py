"""Product model."""
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.models.tag import product_tag


class Product(Base):
    """Product model. Sellable units live in ProductVariant."""

    __tablename__ = 'product'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(220), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    category_id = Column(Integer, ForeignKey('category.id'), nullable=True)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship('Category', back_populates='products')
    # Cascade delete-orphan: deleting a product removes its variants
    variants = relationship('ProductVariant', back_populates='product',
                            cascade='all, delete-orphan', order_by='ProductVariant.id')
    tags = relationship('Tag', secondary=product_tag, back_populates='products')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', slug='{self.slug}')>"

    @property
    def active_variants(self):
        return [v for v in self.variants if v.is_active]

    @property
    def display_price(self):
        """Lowest active variant price, or the base price."""
        prices = [v.price for v in self.active_variants if v.price is not None]
        if prices:
            return min(prices)
        return self.base_price or Decimal('0.00')

    @property
    def total_stock(self):
        return sum(v.stock_quantity or 0 for v in self.variants)

    @property
    def in_stock(self):
        return any((v.stock_quantity or 0) > 0 for v in self.active_variants)
