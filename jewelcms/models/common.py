"""
Column helpers shared by every model.
"""
import uuid
from datetime import datetime


def new_id():
    return str(uuid.uuid4())


def isoformat(dt):
    return dt.isoformat() if dt else None


def now():
    return datetime.now()
