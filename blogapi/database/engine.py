from sqlmodel import create_engine, SQLModel, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine
from contextlib import contextmanager
from typing import Generator, Iterator
import logging

from blogapi.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


engine = create_engine(
    DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_kwargs(DATABASE_URL)
)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE rules unless foreign keys are switched on per connection."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables():
    SQLModel.metadata.create_all(engine)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a unit of work on ``db`` as a single transaction.

    Commits when the block exits normally and rolls back on any exception,
    which is re-raised to the caller.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back transaction")
        db.rollback()
        raise
