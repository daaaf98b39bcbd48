# query_gateway/core/router.py
"""
Module for registering routes in the FastAPI application.
"""

from fastapi import FastAPI

from query_gateway.query.router import router as query_router
from query_gateway.logging.router import router as log_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    app.include_router(query_router, prefix="/api")
    app.include_router(log_router, prefix="/api")
