"""Blog post model."""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class BlogPost(Base):
    """Journal article. Tags are stored comma-separated."""

    __tablename__ = 'blog_post'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(220), nullable=False, unique=True)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    featured_image = Column(String(500), nullable=True)
    category = Column(String(80), nullable=True)
    tags = Column(String(500), nullable=True)
    author_id = Column(Integer, ForeignKey('user_profile.id', ondelete='SET NULL'), nullable=True)
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(Text, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    author = relationship('UserProfile')

    def __repr__(self):
        return f"<BlogPost(id={self.id}, slug='{self.slug}', published={self.is_published})>"

    @property
    def tag_list(self):
        return [t.strip() for t in (self.tags or '').split(',') if t.strip()]
