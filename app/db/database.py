from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import get_settings

settings = get_settings()

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# SQLite needs the thread check disabled when used with FastAPI's threadpool.
connect_args = (
    {"check_same_thread": False}
    if SQLALCHEMY_DATABASE_URL.startswith("sqlite")
    else {}
)

# Create engine
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation every DateTime column uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, timeout_ms: int | None = None) -> Iterator[Session]:
    """Run a unit of work atomically: commit on success, roll back on any error.

    On PostgreSQL each statement in the unit is bounded by ``timeout_ms`` so a
    stuck lock cannot hold the transaction open indefinitely.
    """
    if timeout_ms and db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
