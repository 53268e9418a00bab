"""Database connection and initialization."""

import logging

from sqlalchemy import event
from sqlmodel import SQLModel, Session, create_engine

from buddy.config import settings

# Import all models so SQLModel registers them
import buddy.models  # noqa: F401

logger = logging.getLogger(__name__)

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False},
)


@event.listens_for(engine, "connect")
def _sqlite_pragmas(dbapi_connection, _connection_record) -> None:
    """SQLite keeps foreign key enforcement per connection, so set it on each one."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def init_db() -> None:
    """Create all tables and enable WAL mode."""
    SQLModel.metadata.create_all(engine)

    # WAL is persistent in the database file
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        conn.commit()

    logger.info("Database ready at %s", settings.db_path)


def get_session():
    """FastAPI dependency: yields a database session."""
    with Session(engine) as session:
        yield session
