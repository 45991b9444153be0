"""Tax Rate model."""
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from app.database import Base


class TaxRate(Base):
    """Tax rate by region and tax class (reference data only)."""

    __tablename__ = 'tax_rate'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    country = Column(String(2), nullable=False, default='GB')
    state_province = Column(String(100), nullable=True)
    tax_class = Column(String(40), nullable=False, default='standard')
    # Percentage, e.g. 20.000 for UK standard VAT
    rate = Column(Numeric(6, 3), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<TaxRate(id={self.id}, country='{self.country}', rate={self.rate})>"
