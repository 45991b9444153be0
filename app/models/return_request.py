"""Return request models."""
import enum
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class ReturnStatus(str, enum.Enum):
    """Return request status."""
    REQUESTED = 'requested'
    APPROVED = 'approved'
    RECEIVED = 'received'
    PROCESSED = 'processed'
    REJECTED = 'rejected'


class ReturnRequest(Base):
    """Customer return request against an order."""

    __tablename__ = 'return_request'

    id = Column(Integer, primary_key=True, autoincrement=True)
    return_number = Column(String(40), nullable=False, unique=True)
    order_id = Column(Integer, ForeignKey('order.id', ondelete='CASCADE'), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=ReturnStatus.REQUESTED.value)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    return_shipping_label_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    order = relationship('Order', back_populates='returns')
    items = relationship('ReturnItem', back_populates='return_request', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<ReturnRequest(id={self.id}, number='{self.return_number}', status='{self.status}')>"


class ReturnItem(Base):
    """Line of a return request."""

    __tablename__ = 'return_item'

    id = Column(Integer, primary_key=True, autoincrement=True)
    return_request_id = Column(Integer, ForeignKey('return_request.id', ondelete='CASCADE'), nullable=False)
    order_item_id = Column(Integer, ForeignKey('order_item.id', ondelete='SET NULL'), nullable=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    reason = Column(Text, nullable=True)

    return_request = relationship('ReturnRequest', back_populates='items')
    order_item = relationship('OrderItem')

    def __repr__(self):
        return f"<ReturnItem(id={self.id}, product='{self.product_name}', qty={self.quantity})>"
