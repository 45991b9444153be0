"""Banner model."""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


BANNER_POSITIONS = ('hero', 'secondary', 'sidebar', 'footer', 'popup')


class Banner(Base):
    """Marketing banner shown on storefront pages."""

    __tablename__ = 'banner'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    subtitle = Column(String(300), nullable=True)
    image_url = Column(String(500), nullable=True)
    mobile_image_url = Column(String(500), nullable=True)
    link_url = Column(String(500), nullable=True)
    link_text = Column(String(80), nullable=True)
    position = Column(String(20), nullable=False, default='hero')
    target_page = Column(String(200), nullable=True)
    target_category_id = Column(Integer, ForeignKey('category.id', ondelete='SET NULL'), nullable=True)
    background_color = Column(String(20), nullable=True)
    text_color = Column(String(20), nullable=True)
    button_color = Column(String(20), nullable=True)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    target_category = relationship('Category')

    def __repr__(self):
        return f"<Banner(id={self.id}, title='{self.title}', position='{self.position}')>"
