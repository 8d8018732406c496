"""
Database engine + session factory.

SQLite for local dev, Postgres in production. get_session() always returns a
real session; callers close it.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from jewelcms.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosted Postgres hands out postgres:// but SQLAlchemy 2.x wants postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def get_session():
    """Return a new DB session."""
    return SessionLocal()
