# query_gateway/core/database.py
"""Database configuration with dual database support: config DB and the queried data platform."""

import logging

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from query_gateway.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


# ===== CONFIG DATABASE =====
# Stores request logs and query execution logs
DATABASE_URL = settings.database_url

engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== DATA PLATFORM DATABASE =====
# The record tables the gateway compiles queries against; read-only from here
DATA_PLATFORM_URL = settings.data_platform_url

data_engine = create_engine(DATA_PLATFORM_URL, connect_args=_connect_args(DATA_PLATFORM_URL))


# ===== SESSION GENERATORS =====


def get_db(request: Request):
    """Get config database session from the application's session factory."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_data_engine() -> Engine:
    """Get the data platform engine."""
    return data_engine


# ===== TABLE CREATION =====


def init_db(bind: Engine = None) -> None:
    """Create config database tables."""
    # Import models to ensure they're registered with Base
    from query_gateway.logging.models import Log  # noqa: F401
    from query_gateway.query.models import QueryExecutionLog  # noqa: F401

    target = bind if bind is not None else engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Config database tables ready on {target.url}")
