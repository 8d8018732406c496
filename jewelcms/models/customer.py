"""
Customer model — a registered storefront account.

A lead carrying a customer_id came from a logged-in (returning) visitor.
"""
from sqlalchemy import Column, Text, Boolean, DateTime

from jewelcms.database import Base
from jewelcms.models.common import new_id, isoformat, now


class Customer(Base):
    __tablename__ = 'customers'

    id = Column(Text, primary_key=True, default=new_id)
    email = Column(Text, nullable=False, unique=True)
    first_name = Column(Text, default='')
    last_name = Column(Text, default='')
    phone = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)
    last_login_at = Column(DateTime, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'phone': self.phone,
            'isActive': bool(self.is_active),
            'createdAt': isoformat(self.created_at),
            'lastLoginAt': isoformat(self.last_login_at),
        }
