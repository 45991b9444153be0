"""UserProfile model - storefront customers and back-office admins."""
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from app.database import Base


class UserRole(str, enum.Enum):
    """Profile roles."""
    CUSTOMER = 'customer'
    ADMIN = 'admin'


class UserProfile(Base):
    """UserProfile model - email/password accounts with a role."""

    __tablename__ = 'user_profile'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    active = Column(Boolean, nullable=False, default=True)
    marketing_opt_in = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    orders = relationship('Order', back_populates='user')

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    @property
    def first_name(self):
        if not self.full_name:
            return ''
        return self.full_name.split()[0]

    @property
    def last_name(self):
        if not self.full_name or ' ' not in self.full_name.strip():
            return ''
        return self.full_name.strip().split(' ', 1)[1]

    def __repr__(self):
        return f"<UserProfile(id={self.id}, email='{self.email}', role='{self.role}')>"
