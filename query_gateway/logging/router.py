# query_gateway/logging/router.py
"""API router for the request log."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from query_gateway.core.dependencies import SessionDep
from query_gateway.logging.dao import LogDAO
from query_gateway.logging.schemas import LogPage
from query_gateway.logging.service import LogService

router = APIRouter(
    prefix="/logs",
    tags=["logs"],
)


# ===== DEPENDENCY INJECTION =====

def get_log_dao(session: SessionDep) -> LogDAO:
    """Get LogDAO instance."""
    return LogDAO(session)


def get_log_service(log_dao: LogDAO = Depends(get_log_dao)) -> LogService:
    """Get LogService instance."""
    return LogService(log_dao)


# ===== LOG RETRIEVAL ENDPOINTS =====

@router.get("/", response_model=LogPage)
def get_logs(
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    status_min: Optional[int] = Query(None, ge=100, le=599, description="Minimum status code"),
    status_max: Optional[int] = Query(None, ge=100, le=599, description="Maximum status code"),
    path: Optional[str] = Query(None, description="Only paths starting with this prefix"),
    record_type: Optional[str] = Query(None, alias="recordType", description="Only query calls for this record type"),
    log_service: LogService = Depends(get_log_service),
) -> LogPage:
    """Recent HTTP request logs, most recent first."""
    try:
        return log_service.get_logs(
            limit=limit,
            offset=offset,
            hours=hours,
            status_min=status_min,
            status_max=status_max,
            path=path,
            record_type=record_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/errors", response_model=LogPage)
def get_error_logs(
    limit: int = Query(50, ge=1, le=1000),
    hours: int = Query(24, ge=1, le=168),
    log_service: LogService = Depends(get_log_service),
) -> LogPage:
    """Requests that ended with a client or server error."""
    return log_service.get_error_logs(limit=limit, hours=hours)


@router.get("/failed-queries", response_model=LogPage)
def get_failed_query_logs(
    limit: int = Query(50, ge=1, le=1000),
    hours: int = Query(24, ge=1, le=168),
    record_type: Optional[str] = Query(None, alias="recordType"),
    log_service: LogService = Depends(get_log_service),
) -> LogPage:
    """Query calls answered with a ``success: false`` envelope."""
    return log_service.get_failed_query_logs(limit=limit, hours=hours, record_type=record_type)
