"""Database engine/session helpers."""

from __future__ import annotations

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, Counter

DEFAULT_COUNTERS = ("imports", "sessions")


def create_db_engine(db_url: str) -> Engine:
    """Create a SQLAlchemy engine with conservative defaults for scripts."""
    if db_url.startswith("sqlite") and (db_url.endswith("://") or ":memory:" in db_url):
        # one shared connection, otherwise every checkout sees an empty database
        return create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(db_url, pool_pre_ping=True, future=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the provided engine."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def ensure_schema(engine: Engine) -> None:
    """Create required tables when missing and seed the ID counters."""
    Base.metadata.create_all(engine, checkfirst=True)

    with Session(engine) as session:
        existing = set(session.scalars(select(Counter.name)))
        for name in DEFAULT_COUNTERS:
            if name not in existing:
                session.add(Counter(name=name, value=1))
        session.commit()
