"""
SQLAlchemy engine and session factory for the API.
Tables are declared in models.py; init_db creates them.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from circus.config import DATABASE_URL

# SQLite sessions are used from FastAPI's threadpool
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create the games and storage_slots tables on bind (default: the configured engine)."""
    # Import registers the tables on Base.metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
