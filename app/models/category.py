"""Category model."""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Category(Base):
    """Product Category (nestable through parent_id)."""

    __tablename__ = 'category'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(140), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey('category.id'), nullable=True)
    image_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    seo_title = Column(String(200), nullable=True)
    seo_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    parent = relationship('Category', remote_side=[id], backref='children')
    products = relationship('Product', back_populates='category')

    @property
    def product_count(self):
        return len(self.products)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
