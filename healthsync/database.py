from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from healthsync.core.config import DATABASE_URL

Base = declarative_base()

SessionLocal = sessionmaker(autocommit=False, autoflush=False)
engine = None


def configure(url: str = DATABASE_URL):
    """Bind the session factory to a new engine for ``url``."""
    global engine
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    SessionLocal.configure(bind=engine)
    return engine


configure()


def init_db():
    # Import models so every table is registered on Base.metadata
    from healthsync.models import (  # noqa: F401
        appointment,
        connection_request,
        health_log,
        medication,
        message,
        notification,
        user,
    )

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db):
    """Commit everything done inside the block, or nothing at all."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
