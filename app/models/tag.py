"""Tag model and the product/tag association table."""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


product_tag = Table(
    'product_tag',
    Base.metadata,
    Column('product_id', Integer, ForeignKey('product.id', ondelete='CASCADE'), primary_key=True),
    Column('tag_id', Integer, ForeignKey('tag.id', ondelete='CASCADE'), primary_key=True),
)


class Tag(Base):
    """Product tag (e.g. 'Bestseller', 'Handmade')."""

    __tablename__ = 'tag'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(80), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=False, default='#10105A')
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    products = relationship('Product', secondary=product_tag, back_populates='tags')

    @property
    def product_count(self):
        return len(self.products)

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"
