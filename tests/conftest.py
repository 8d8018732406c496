"""Shared test fixtures."""
import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jewelcms.database import Base


class FakeRedis:
    """Minimal in-memory Redis covering what the circuit breakers use."""

    def __init__(self):
        self.store = {}
        self.hashes = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = str(value)

    def incr(self, key):
        val = int(self.store.get(key, 0)) + 1
        self.store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)
            self.hashes.pop(k, None)

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        h = self.hashes.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues commands and replays them against FakeRedis on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def queue(*args):
            self._ops.append((name, args))
            return self
        return queue

    def execute(self):
        results = [getattr(self._redis, name)(*args) for name, args in self._ops]
        self._ops = []
        return results


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import jewelcms.models.catalog
    import jewelcms.models.customer
    import jewelcms.models.lead
    import jewelcms.models.site_setting
    import jewelcms.models.wishlist
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route get_session() calls to the test session.

    Route modules import get_session by name, so each of those bindings is
    patched too. close() is disabled so handlers closing the session in their
    finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    targets = [
        'jewelcms.database.get_session',
        'jewelcms.routes.leads.get_session',
        'jewelcms.routes.admin_leads.get_session',
        'jewelcms.routes.wishlists.get_session',
        'jewelcms.routes.catalog.get_session',
        'jewelcms.routes.settings.get_session',
    ]
    patchers = [patch(t, return_value=db_session) for t in targets]
    for p in patchers:
        p.start()
    yield db_session
    for p in patchers:
        p.stop()
    db_session.close = _real_close


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def mock_redis(fake_redis):
    """Swap the shared Redis client for an in-memory fake."""
    with patch('jewelcms.extensions.redis_client', fake_redis):
        yield fake_redis


@pytest.fixture
def app(mock_redis):
    """Flask test app."""
    from jewelcms import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


# ── Record factories ─────────────────────────────────────────────────────────

@pytest.fixture
def make_product(db_session):
    """Factory fixture — persists a Product."""
    from jewelcms.models.catalog import Product

    def _make(**overrides):
        defaults = dict(sku='SKU-1', name='Gold Ring', price=100.0, status='PUBLISHED')
        defaults.update(overrides)
        product = Product(**defaults)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_lead(db_session):
    """Factory fixture — persists a Lead."""
    from jewelcms.models.lead import Lead

    def _make(**overrides):
        defaults = dict(name='Jane Buyer', email='jane@example.com', source='WEBSITE', status='NEW', score=0)
        defaults.update(overrides)
        lead = Lead(**defaults)
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


@pytest.fixture
def make_wishlist(db_session):
    """Factory fixture — persists a Wishlist holding the given product ids."""
    from jewelcms.models.wishlist import Wishlist, WishlistItem

    def _make(product_ids=(), **overrides):
        wishlist = Wishlist(items=[WishlistItem(product_id=pid) for pid in product_ids], **overrides)
        db_session.add(wishlist)
        db_session.commit()
        return wishlist
    return _make


@pytest.fixture
def make_setting(db_session):
    from jewelcms.models.site_setting import SiteSetting

    def _make(key, value):
        setting = SiteSetting(key=key, value=value)
        db_session.add(setting)
        db_session.commit()
        return setting
    return _make
