"""
Lead model — one row per submission (wishlist checkout or contact form).

score is computed once at creation and never recomputed by later updates.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey

from jewelcms.database import Base
from jewelcms.models.common import new_id, isoformat, now
from jewelcms.models.enums import LeadSource, LeadStatus, enum_value


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Text, primary_key=True, default=new_id)
    name = Column(Text, nullable=False, default='')
    email = Column(Text, nullable=False, index=True)
    phone = Column(Text, nullable=True)
    source = Column(Text, nullable=False, default=LeadSource.WEBSITE.value)
    status = Column(Text, nullable=False, default=LeadStatus.NEW.value)
    score = Column(Integer, nullable=False, default=0)

    message = Column(Text, nullable=True)
    wishlist_id = Column(Text, nullable=True)
    customer_id = Column(Text, nullable=True, index=True)

    # Attribution
    utm_source = Column(Text, nullable=True)
    utm_medium = Column(Text, nullable=True)
    utm_campaign = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)

    assigned_to = Column(Text, nullable=True)

    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)
    contacted_at = Column(DateTime, nullable=True)
    converted_at = Column(DateTime, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'source': enum_value(self.source),
            'status': enum_value(self.status),
            'score': self.score,
            'message': self.message,
            'wishlistId': self.wishlist_id,
            'customerId': self.customer_id,
            'utmSource': self.utm_source,
            'utmMedium': self.utm_medium,
            'utmCampaign': self.utm_campaign,
            'referrer': self.referrer,
            'assignedTo': self.assigned_to,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
            'contactedAt': isoformat(self.contacted_at),
            'convertedAt': isoformat(self.converted_at),
        }


class LeadNote(Base):
    __tablename__ = 'lead_notes'

    id = Column(Text, primary_key=True, default=new_id)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=False, index=True)
    note = Column(Text, nullable=False)
    created_by = Column(Text, nullable=False)
    created_at = Column(DateTime, default=now)

    def to_dict(self):
        return {
            'id': self.id,
            'leadId': self.lead_id,
            'note': self.note,
            'createdBy': self.created_by,
            'createdAt': isoformat(self.created_at),
        }
