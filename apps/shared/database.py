"""
Database configuration and session management

This module provides the SQLAlchemy setup for database connectivity.
NO models are defined here - this is just infrastructure.

The engine is configured once at application startup from DATABASE_URL
(see configure_database); every request then gets its own session
through the get_db dependency.
"""

import logging
import os
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)

DATABASE_URL_ENV = "DATABASE_URL"

# Session factory, bound to an engine by configure_database()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

# Base class for ORM models
Base = declarative_base()

_engine: Optional[Engine] = None


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing at startup."""


def get_database_url() -> str:
    """Read the connection string from the environment. It is required."""
    url = os.getenv(DATABASE_URL_ENV)
    if not url:
        raise ConfigurationError(f"{DATABASE_URL_ENV} is not set")
    return url


def configure_database(database_url: Optional[str] = None) -> Engine:
    """
    Create the engine and bind the session factory to it.

    Using NullPool for better compatibility with containerized environments:
    every session opens its own connection and closes it afterwards.
    """
    global _engine

    url = database_url or get_database_url()
    echo = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

    engine = create_engine(url, poolclass=NullPool, echo=echo)
    SessionLocal.configure(bind=engine)
    _engine = engine

    logger.info(f"Database configured ({engine.url.get_backend_name()})")
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise ConfigurationError("Database has not been configured")
    return _engine


def dispose_database() -> None:
    """Release the engine configured at startup."""
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None


def init_schema(engine: Engine) -> None:
    """Create any missing tables for the registered models."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Dependency injection for database sessions
    Usage in FastAPI endpoints:

    @app.get("/endpoint")
    def endpoint(db: Session = Depends(get_db)):
        # use db here
        pass
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> bool:
    """
    Test database connectivity
    Returns True if connection successful, False otherwise
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("Database connectivity check failed", exc_info=True)
        return False
