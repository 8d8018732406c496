"""
Closed value sets shared by models, routes and the scoring engine.

Members subclass str so rows loaded from the Text columns compare equal to
the enum members they were written from.
"""
import enum


class LeadSource(str, enum.Enum):
    WEBSITE = 'WEBSITE'
    WISHLIST = 'WISHLIST'
    CONTACT_FORM = 'CONTACT_FORM'
    PHONE = 'PHONE'
    CHAT = 'CHAT'
    SOCIAL_MEDIA = 'SOCIAL_MEDIA'
    WALK_IN = 'WALK_IN'


class LeadStatus(str, enum.Enum):
    NEW = 'NEW'
    CONTACTED = 'CONTACTED'
    SCHEDULED = 'SCHEDULED'
    CONVERTED = 'CONVERTED'
    LOST = 'LOST'


class ProductStatus(str, enum.Enum):
    DRAFT = 'DRAFT'
    PUBLISHED = 'PUBLISHED'
    ARCHIVED = 'ARCHIVED'


class LeadCategory(str, enum.Enum):
    COLD = 'Cold Lead'
    WARM = 'Warm Lead'
    HOT = 'Hot Lead'


def enum_value(value):
    """Plain string for an enum member (or pass-through for raw strings/None)."""
    return value.value if isinstance(value, enum.Enum) else value
