"""Order model."""
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class OrderStatus(str, enum.Enum):
    """Fulfilment status."""
    PENDING = 'pending'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


class PaymentStatus(str, enum.Enum):
    """Payment status."""
    PENDING = 'pending'
    PAID = 'paid'
    FAILED = 'failed'
    REFUNDED = 'refunded'
    PARTIALLY_REFUNDED = 'partially_refunded'


class Order(Base):
    """Order placed through the storefront checkout."""

    __tablename__ = 'order'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey('user_profile.id'), nullable=True)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(40), nullable=True)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    currency = Column(String(3), nullable=False, default='GBP')

    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    shipping_method = Column(String(40), nullable=False, default='standard')

    # Shipping address
    shipping_first_name = Column(String(100), nullable=False)
    shipping_last_name = Column(String(100), nullable=False)
    shipping_company = Column(String(150), nullable=True)
    shipping_address1 = Column(String(200), nullable=False)
    shipping_address2 = Column(String(200), nullable=True)
    shipping_city = Column(String(100), nullable=False)
    shipping_state = Column(String(100), nullable=False)
    shipping_postal_code = Column(String(20), nullable=False)
    shipping_country = Column(String(2), nullable=False, default='GB')

    # Billing address
    billing_first_name = Column(String(100), nullable=True)
    billing_last_name = Column(String(100), nullable=True)
    billing_company = Column(String(150), nullable=True)
    billing_address1 = Column(String(200), nullable=True)
    billing_address2 = Column(String(200), nullable=True)
    billing_city = Column(String(100), nullable=True)
    billing_state = Column(String(100), nullable=True)
    billing_postal_code = Column(String(20), nullable=True)
    billing_country = Column(String(2), nullable=True)

    transaction_id = Column(String(80), nullable=True)
    # Idempotency key to prevent duplicate orders on double-submit
    idempotency_key = Column(String(64), unique=True, nullable=True, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('UserProfile', back_populates='orders')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan')
    returns = relationship('ReturnRequest', back_populates='order', cascade='all, delete-orphan')

    @property
    def customer_name(self):
        return f"{self.shipping_first_name} {self.shipping_last_name}".strip()

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status}')>"
