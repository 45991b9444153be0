"""Product Variant model."""
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class ProductVariant(Base):
    """Product Variant (a purchasable SKU with its own stock)."""

    __tablename__ = 'product_variant'

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='CASCADE'), nullable=False)
    sku = Column(String(80), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False, default=0, server_default='0.00')
    stock_quantity = Column(Integer, nullable=False, default=0, server_default='0')
    low_stock_threshold = Column(Integer, nullable=False, default=5, server_default='5')

    # Customisation attributes
    material = Column(String(80), nullable=True)
    gemstone = Column(String(80), nullable=True)
    size = Column(String(40), nullable=True)
    gauge = Column(String(40), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product', back_populates='variants')
    stock_transactions = relationship('StockTransaction', back_populates='variant',
                                      cascade='all, delete-orphan')

    @property
    def is_low_stock(self):
        return (self.stock_quantity or 0) <= (self.low_stock_threshold or 0)

    @property
    def attributes(self):
        """Non-empty customisation attributes as a dict."""
        values = {
            'material': self.material,
            'gemstone': self.gemstone,
            'size': self.size,
            'gauge': self.gauge,
        }
        return {k: v for k, v in values.items() if v}

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, sku='{self.sku}', stock={self.stock_quantity})>"
