"""SEO page metadata model."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from app.database import Base


class SeoPage(Base):
    """Per-path meta tags rendered into the storefront <head>."""

    __tablename__ = 'seo_page'

    id = Column(Integer, primary_key=True, autoincrement=True)
    page_path = Column(String(255), nullable=False, unique=True)
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(Text, nullable=True)
    meta_keywords = Column(String(500), nullable=True)
    og_title = Column(String(200), nullable=True)
    og_description = Column(Text, nullable=True)
    og_image = Column(String(500), nullable=True)
    twitter_card = Column(String(40), nullable=False, default='summary_large_image')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SeoPage(id={self.id}, path='{self.page_path}')>"
