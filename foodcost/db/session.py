"""Database engine and request-scoped sessions."""

from collections.abc import Generator
from typing import Annotated, Any, Dict

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from foodcost.core.config import Settings, settings


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def engine_options(config: Settings) -> Dict[str, Any]:
    """Keyword arguments for create_engine, derived from settings.

    SQLite gets a single-file friendly setup; server databases get the
    configured connection pool.
    """
    if is_sqlite(config.database_url):
        return {
            "connect_args": {"check_same_thread": False},
            "pool_pre_ping": True,
            "pool_recycle": config.db_pool_recycle,
        }
    return {
        "connect_args": {},
        "pool_size": config.db_pool_size,
        "max_overflow": config.db_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": config.db_pool_recycle,
    }


engine = create_engine(
    settings.database_url,
    echo=settings.debug and settings.log_level == "DEBUG",
    **engine_options(settings),
)

# SQLite leaves foreign key checks off per connection
if is_sqlite(settings.database_url):
    @event.listens_for(engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]
