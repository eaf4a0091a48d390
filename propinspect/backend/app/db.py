from __future__ import annotations

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> Engine:
    """
    SQLite needs cross-thread access for the CLI and the tests; a bare
    "sqlite://" URL is in-memory, so every connection must share one pool slot
    or each session would see an empty database.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, future=True)

    kwargs = {"connect_args": {"check_same_thread": False}, "future": True}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create the user, task, inspection, audit and catalog tables if missing."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    Yields a session and guarantees rollback on exceptions, so a failed
    transition never leaves a half-written inspection behind.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
