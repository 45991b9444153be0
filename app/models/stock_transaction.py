"""Stock Transaction model."""
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class StockTransactionType(str, enum.Enum):
    """Why a variant's stock changed."""
    RESTOCK = 'restock'
    ADJUSTMENT = 'adjustment'
    RETURN = 'return'
    SALE = 'sale'


class StockTransaction(Base):
    """Stock Transaction (one row per stock change of a variant)."""

    __tablename__ = 'stock_transaction'

    id = Column(Integer, primary_key=True, autoincrement=True)
    variant_id = Column(Integer, ForeignKey('product_variant.id', ondelete='CASCADE'), nullable=False)
    quantity_change = Column(Integer, nullable=False)
    resulting_quantity = Column(Integer, nullable=False)
    transaction_type = Column(String(20), nullable=False)
    reference = Column(String(80), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    variant = relationship('ProductVariant', back_populates='stock_transactions')

    def __repr__(self):
        return f"<StockTransaction(variant_id={self.variant_id}, change={self.quantity_change}, type='{self.transaction_type}')>"
