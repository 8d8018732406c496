"""
SiteSetting model — key/value runtime switches edited from the admin panel.

Values are stored as text; `type` says how to read them back.
"""
import json

from sqlalchemy import Column, Text

from jewelcms.database import Base
from jewelcms.models.common import new_id

SETTING_TYPES = ('string', 'number', 'boolean', 'json')


class SiteSetting(Base):
    __tablename__ = 'site_settings'

    id = Column(Text, primary_key=True, default=new_id)
    key = Column(Text, nullable=False, unique=True)
    value = Column(Text, nullable=False, default='')
    type = Column(Text, nullable=False, default='string')

    def typed_value(self):
        """Stored text parsed according to `type`; unparseable json stays a string."""
        if self.type == 'number':
            return float(self.value)
        if self.type == 'boolean':
            return self.value == 'true'
        if self.type == 'json':
            try:
                return json.loads(self.value)
            except ValueError:
                return self.value
        return self.value

    def to_dict(self):
        return {'key': self.key, 'value': self.typed_value(), 'type': self.type}


def serialize_setting(value, setting_type):
    """Text form of a submitted value for the given type."""
    if setting_type == 'boolean':
        return 'true' if value is True or value == 'true' else 'false'
    if setting_type == 'json' and not isinstance(value, str):
        return json.dumps(value)
    return str(value)
