# query_gateway/query/router.py
"""API router for the record query endpoint."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from query_gateway.core.dependencies import DataEngineDep, RecordCatalogDep, SessionDep, SettingsDep
from query_gateway.logging.recorder import remember_query_outcome
from query_gateway.query.backend import SqlAlchemyPagedBackend
from query_gateway.query.builder import QueryBuilder
from query_gateway.query.engine import QueryEngine
from query_gateway.query.execution_log_dao import QueryExecutionLogDAO
from query_gateway.query.operators import OperatorCompiler
from query_gateway.query.schemas import QueryExecutionLogRead, QueryRequest
from query_gateway.query.service import QueryService

router = APIRouter(prefix="/query", tags=["query"])


# Dependency functions
def get_execution_log_dao(db: SessionDep) -> QueryExecutionLogDAO:
    return QueryExecutionLogDAO(db)


def get_query_service(
    catalog: RecordCatalogDep,
    data_engine: DataEngineDep,
    settings: SettingsDep,
    execution_log_dao: QueryExecutionLogDAO = Depends(get_execution_log_dao),
) -> QueryService:
    builder = QueryBuilder(catalog, OperatorCompiler(settings.date_placeholder))
    engine = QueryEngine(SqlAlchemyPagedBackend(data_engine), max_page_size=settings.query_max_page_size)
    return QueryService(
        builder,
        engine,
        execution_log_dao=execution_log_dao,
        version=settings.api_version,
        max_page_size=settings.query_max_page_size,
    )


# ===== QUERY ENDPOINTS =====


@router.post("")
def run_query(
    request: Request,
    query: Optional[QueryRequest] = Body(default=None),
    service: QueryService = Depends(get_query_service),
) -> Dict[str, Any]:
    """
    Compile and execute one record query.

    Always answers 200 with a result envelope; compile and execution errors
    are reported with ``success: false``.
    """
    envelope = service.execute(query)
    remember_query_outcome(request, envelope)
    return envelope


@router.get("")
def describe_query_endpoint(service: QueryService = Depends(get_query_service)) -> Dict[str, Any]:
    """Supported operators, operator symbols, record types and filter examples."""
    return service.describe()


@router.get("/executions", response_model=List[QueryExecutionLogRead])
def get_recent_executions(
    limit: int = Query(100, ge=1, le=500, description="Maximum number of executions to return"),
    record_type: Optional[str] = Query(None, alias="recordType"),
    success: Optional[bool] = Query(None),
    service: QueryService = Depends(get_query_service),
) -> List[QueryExecutionLogRead]:
    """Recent query executions, most recent first."""
    return service.recent_executions(limit=limit, record_type=record_type, success=success)
