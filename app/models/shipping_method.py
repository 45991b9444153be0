"""Shipping Method model."""
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from app.database import Base


class ShippingMethod(Base):
    """Shipping method maintained from the admin settings screen."""

    __tablename__ = 'shipping_method'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    carrier = Column(String(80), nullable=True)
    service_code = Column(String(40), nullable=True)
    base_cost = Column(Numeric(10, 2), nullable=False, default=0)
    cost_per_kg = Column(Numeric(10, 2), nullable=True)
    free_shipping_threshold = Column(Numeric(10, 2), nullable=True)
    estimated_delivery_days_min = Column(Integer, nullable=True)
    estimated_delivery_days_max = Column(Integer, nullable=True)
    max_weight = Column(Numeric(10, 2), nullable=True)
    requires_signature = Column(Boolean, nullable=False, default=False)
    is_tracked = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def delivery_window(self):
        lo, hi = self.estimated_delivery_days_min, self.estimated_delivery_days_max
        if lo and hi:
            return f"{lo}-{hi} business days"
        if lo or hi:
            return f"{lo or hi} business days"
        return ''

    def __repr__(self):
        return f"<ShippingMethod(id={self.id}, name='{self.name}')>"
