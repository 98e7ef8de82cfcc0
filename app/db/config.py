"""Database configuration for the Workspace Task Recurrence service."""
from typing import Generator
import logging

from sqlalchemy import event
from sqlmodel import create_engine, Session

from app.config import DATABASE_URL, IS_SQLITE

logger = logging.getLogger(__name__)

if IS_SQLITE:
    logger.info(f"[DB CONFIG] Using SQLite database: {DATABASE_URL}")
else:
    logger.info("[DB CONFIG] Using PostgreSQL database")

# SQLite connections are shared across FastAPI worker threads
connect_args = {"check_same_thread": False} if IS_SQLITE else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def configure_sqlite(target_engine) -> None:
    """Enable foreign keys and WAL mode on every new SQLite connection."""

    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


if IS_SQLITE:
    configure_sqlite(engine)


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session
