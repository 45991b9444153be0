"""Promotion model."""
import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from app.database import Base


class PromotionType(str, enum.Enum):
    """Discount kinds."""
    PERCENTAGE = 'percentage'
    FIXED_AMOUNT = 'fixed_amount'
    FREE_SHIPPING = 'free_shipping'
    BUY_X_GET_Y = 'buy_x_get_y'


class Promotion(Base):
    """Promotion / discount code."""

    __tablename__ = 'promotion'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    code = Column(String(40), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default=PromotionType.PERCENTAGE.value)
    value = Column(Numeric(10, 2), nullable=False, default=0)
    minimum_order_amount = Column(Numeric(10, 2), nullable=True)
    maximum_discount_amount = Column(Numeric(10, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    usage_limit_per_customer = Column(Integer, nullable=True)
    current_usage_count = Column(Integer, nullable=False, default=0, server_default='0')
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Promotion(id={self.id}, code='{self.code}', type='{self.type}')>"
