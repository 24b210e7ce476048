from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from buildseason.core.config import get_settings
from buildseason.core.errors import StorageError
from buildseason.persistence.models import Base

logger = logging.getLogger(__name__)


def create_engine_from_url(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


settings = get_settings()
engine = create_engine_from_url(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def flush_or_raise(session: Session, operation: str, team_id: str | None = None) -> None:
    """Flush pending writes, turning driver failures into ``StorageError``."""
    try:
        session.flush()
    except SQLAlchemyError as exc:
        logger.exception("storage failure during %s: team_id=%s", operation, team_id)
        raise StorageError(f"storage failure during {operation}") from exc


def get_session() -> Generator[Session, None, None]:
    with session_scope() as session:
        yield session
