"""
Record repository — per-collection CRUD + predicate search over SQLAlchemy models.

Reads are full-table scans with filtering done in Python, so search() keeps the
semantics of the flat JSON store this replaced (partial string matches,
list-contains, ignore-None filters). No locking, no transactions beyond the
single commit each write performs.
"""
import logging

from jewelcms.models.catalog import Brand, Product
from jewelcms.models.customer import Customer
from jewelcms.models.lead import Lead, LeadNote
from jewelcms.models.site_setting import SiteSetting
from jewelcms.models.wishlist import Wishlist
from jewelcms.models.common import now

logger = logging.getLogger('services.repository')

COLLECTIONS = {
    'products': Product,
    'brands': Brand,
    'leads': Lead,
    'lead_notes': LeadNote,
    'wishlists': Wishlist,
    'customers': Customer,
    'site_settings': SiteSetting,
}


class Repository:
    """
    Collection-keyed access to the store.

    Usage:
        repo = Repository(session)
        lead = repo.get_by_id('leads', lead_id)
        repo.update('leads', lead_id, {'status': LeadStatus.CONTACTED.value})

    The session is owned by the caller; the repository commits after every
    write but never closes it.
    """

    def __init__(self, session):
        self.session = session

    @staticmethod
    def _model(collection):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise KeyError(f"Unknown collection '{collection}'") from None

    # ── Reads ────────────────────────────────────────────────────────────

    def get_all(self, collection):
        return self.session.query(self._model(collection)).all()

    def get_by_id(self, collection, record_id):
        if record_id is None:
            return None
        return self.session.get(self._model(collection), record_id)

    def get_by(self, collection, field, value):
        model = self._model(collection)
        return self.session.query(model).filter(getattr(model, field) == value).all()

    def search(self, collection, filters):
        """Return records matching every non-None filter."""
        active = {k: v for k, v in filters.items() if v is not None}
        return [rec for rec in self.get_all(collection) if _matches(rec, active)]

    # Scorer read contract
    def get_all_products(self):
        return self.get_all('products')

    def get_all_leads(self):
        return self.get_all('leads')

    # ── Writes ───────────────────────────────────────────────────────────

    def create(self, collection, record=None, **fields):
        """Insert a model instance (or build one from fields) and commit."""
        if record is None:
            record = self._model(collection)(**fields)
        self.session.add(record)
        self.session.commit()
        logger.debug("Created %s/%s", collection, record.id)
        return record

    def update(self, collection, record_id, updates):
        """Apply a dict of attribute updates; None when the id is unknown."""
        record = self.get_by_id(collection, record_id)
        if record is None:
            return None
        for key, value in updates.items():
            setattr(record, key, value)
        if hasattr(record, 'updated_at'):
            record.updated_at = now()
        self.session.commit()
        return record

    def delete(self, collection, record_id):
        record = self.get_by_id(collection, record_id)
        if record is None:
            return False
        self.session.delete(record)
        self.session.commit()
        logger.debug("Deleted %s/%s", collection, record_id)
        return True

    def get_setting(self, key, default=None):
        """Value of a site setting by key."""
        rows = self.get_by('site_settings', 'key', key)
        return rows[0].value if rows else default


# ── Private helpers ──────────────────────────────────────────────────────────

def _matches(record, filters):
    for key, value in filters.items():
        current = getattr(record, key, None)
        if isinstance(current, list):
            if value not in current:
                return False
        elif isinstance(current, str) and isinstance(value, str):
            if value.lower() not in current.lower():
                return False
        elif current != value:
            return False
    return True
