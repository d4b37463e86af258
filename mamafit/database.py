"""Database session and base model setup."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from mamafit.config import get_settings


logger = logging.getLogger(__name__)

settings = get_settings()
engine: Engine | None = (
    create_engine(settings.database_url, echo=settings.debug, future=True)
    if settings.database_url
    else None
)
if engine is None:
    logger.warning("DATABASE_URL not configured - running without a datastore")


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite."""
    if type(dbapi_conn).__module__.split(".")[0] != "sqlite3":
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def is_database_configured() -> bool:
    """True when a datastore URL was supplied."""
    return engine is not None


def get_db() -> Iterator[Session | None]:
    """FastAPI dependency yielding a transactional database session.

    Yields ``None`` when no datastore is configured so callers can fall back
    to the static catalog.
    """
    if engine is None:
        yield None
        return

    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _alembic_config() -> Config:
    """Return a configured Alembic Config instance."""

    root = Path(__file__).resolve().parent.parent
    cfg = Config(str(root / "alembic.ini"))
    cfg.set_main_option("script_location", str(root / "migrations"))
    if settings.database_url:
        cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return cfg


def run_migrations(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the specified revision."""

    if engine is None:
        raise RuntimeError("DATABASE_URL is not configured; nothing to migrate")
    cfg = _alembic_config()
    command.upgrade(cfg, target_revision)
