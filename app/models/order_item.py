"""Order Item model."""
import json
from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class OrderItem(Base):
    """Order Item (a snapshot of a cart line at purchase time)."""

    __tablename__ = 'order_item'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey('order.id', ondelete='CASCADE'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='SET NULL'), nullable=True)
    variant_id = Column(Integer, ForeignKey('product_variant.id', ondelete='SET NULL'), nullable=True)
    product_name = Column(String(200), nullable=False)
    variant_name = Column(String(200), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    # JSON-encoded customisation attributes
    attributes = Column(Text, nullable=True)

    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')
    variant = relationship('ProductVariant')

    @property
    def attributes_dict(self):
        if not self.attributes:
            return {}
        return json.loads(self.attributes)

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product='{self.product_name}', qty={self.quantity})>"
