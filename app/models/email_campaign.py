"""Email Campaign model."""
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class CampaignStatus(str, enum.Enum):
    """Email campaign status."""
    DRAFT = 'draft'
    SCHEDULED = 'scheduled'
    SENDING = 'sending'
    SENT = 'sent'
    CANCELLED = 'cancelled'


class EmailCampaign(Base):
    """Email campaign with {{variable}} placeholders in its HTML content."""

    __tablename__ = 'email_campaign'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    subject = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=CampaignStatus.DRAFT.value)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    recipients_count = Column(Integer, nullable=False, default=0, server_default='0')
    opened_count = Column(Integer, nullable=False, default=0, server_default='0')
    clicked_count = Column(Integer, nullable=False, default=0, server_default='0')
    created_by = Column(Integer, ForeignKey('user_profile.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    author = relationship('UserProfile')

    @property
    def open_rate(self):
        if not self.recipients_count:
            return 0.0
        return round(self.opened_count * 100.0 / self.recipients_count, 1)

    @property
    def click_rate(self):
        if not self.recipients_count:
            return 0.0
        return round(self.clicked_count * 100.0 / self.recipients_count, 1)

    def __repr__(self):
        return f"<EmailCampaign(id={self.id}, name='{self.name}', status='{self.status}')>"
