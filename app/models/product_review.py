"""Product review model."""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class ProductReview(Base):
    """
    A customer's rating of a product, one per customer per product.

    ``is_verified`` is set when the customer has a paid order containing
    the product. Hidden reviews (``is_approved`` false) stay out of the
    storefront and its rating summary.
    """

    __tablename__ = 'product_review'
    __table_args__ = (
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_product_review_rating'),
        UniqueConstraint('product_id', 'user_id', name='uq_product_review_customer'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('user_profile.id', ondelete='CASCADE'), nullable=False)
    rating = Column(Integer, nullable=False)
    title = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    variant_name = Column(String(200), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_approved = Column(Boolean, nullable=False, default=True)
    helpful_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    product = relationship('Product')
    user = relationship('UserProfile')

    def __repr__(self):
        return f"<ProductReview(id={self.id}, product_id={self.product_id}, rating={self.rating})>"

    @property
    def reviewer_name(self):
        """First name and last initial, e.g. "Jane S."."""
        if not self.user or not self.user.first_name:
            return 'Customer'
        initial = f" {self.user.last_name[0]}." if self.user.last_name else ''
        return f"{self.user.first_name}{initial}"
