# query_gateway/core/dependencies.py
"""Dependencies shared by the query gateway routers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from query_gateway.core.config import Settings, get_settings
from query_gateway.core.database import get_data_engine, get_db
from query_gateway.query.catalog import RecordCatalog, default_catalog

# Core database dependencies
SessionDep = Annotated[Session, Depends(get_db)]
DataEngineDep = Annotated[Engine, Depends(get_data_engine)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_record_catalog() -> RecordCatalog:
    """Record catalog used to compile queries; override to serve a different table mapping."""
    return default_catalog()


RecordCatalogDep = Annotated[RecordCatalog, Depends(get_record_catalog)]
