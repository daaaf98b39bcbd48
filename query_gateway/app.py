"""FastAPI application entry point for the record query gateway."""

from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from query_gateway import __version__
from query_gateway.core.config import configure_logging, get_settings
from query_gateway.core.database import SessionLocal, init_db
from query_gateway.core.router import register_routes
from query_gateway.logging.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    response_validation_exception_handler,
)
from query_gateway.logging.middleware import LoggingMiddleware


def create_app(config_engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    ``config_engine`` replaces the configured config database (request and
    execution logs); tests pass an in-memory engine here.
    """
    configure_logging(get_settings())

    app = FastAPI(
        title="Record Query Gateway",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    if config_engine is not None:
        init_db(bind=config_engine)
        app.state.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=config_engine)
    else:
        init_db()
        app.state.session_factory = SessionLocal

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    # Capture 500 response validation errors (these aren't captured by middleware)
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app
