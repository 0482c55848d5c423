import os
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

from src.db.models import Base

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_database_url() -> str:
    """Read DATABASE_URL from the environment, failing loudly when unset."""
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable must be set in your .env file (see .env.example)")
    return database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement off; cascade deletes depend on it.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# PUBLIC_INTERFACE
def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Build an engine for the given URL (or DATABASE_URL).

    SQLite connections get foreign keys switched on; an in-memory SQLite
    database is pinned to a single shared connection so every session sees
    the same tables.
    """
    url = database_url or get_database_url()
    kwargs = {"echo": False, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.debug(f"Created engine for dialect {engine.dialect.name}")
    return engine


# PUBLIC_INTERFACE
def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine. One session is opened per request."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


# PUBLIC_INTERFACE
def init_db(engine: Engine) -> None:
    """Create the users and todos tables if they do not exist yet."""
    Base.metadata.create_all(bind=engine)


# PUBLIC_INTERFACE
def drop_db(engine: Engine) -> None:
    """Drop every table owned by the models."""
    Base.metadata.drop_all(bind=engine)


# PUBLIC_INTERFACE
def get_db(request: Request):
    """
    Yields a SQLAlchemy session for use in dependency injection.
    The session factory lives on app.state, so each app instance (and each
    test) carries its own storage handle.
    Closes the session after use.
    Example usage (FastAPI):
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
