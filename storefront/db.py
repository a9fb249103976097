from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from . import config

DATABASE_URL = config.settings.database_url


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite only enforces foreign keys when asked to on every connection."""

    @event.listens_for(target, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if DATABASE_URL.startswith("sqlite"):
    # check_same_thread=False for multithreading in FastAPI
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=config.settings.db_echo,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
else:
    engine = create_engine(
        DATABASE_URL,
        isolation_level="READ COMMITTED",
        pool_pre_ping=True,
        echo=config.settings.db_echo,
        future=True,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a unit of work on ``db``: commit when the block completes, roll back
    on any exception and re-raise it unchanged.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
