# query_gateway/logging/service.py
"""Service layer for reading request logs."""

from typing import Optional

from query_gateway.logging.dao import LogDAO, LogFilter
from query_gateway.logging.schemas import LogPage, LogRead

ERROR_STATUS_MIN = 400


class LogService:
    """Retrieves request log data for the log endpoints."""

    def __init__(self, log_dao: LogDAO):
        self.dao = log_dao

    def get_logs(
        self,
        limit: int = 50,
        offset: int = 0,
        hours: int = 24,
        status_min: Optional[int] = None,
        status_max: Optional[int] = None,
        path: Optional[str] = None,
        record_type: Optional[str] = None,
        query_success: Optional[bool] = None,
    ) -> LogPage:
        if status_min is not None and status_max is not None and status_min > status_max:
            raise ValueError("status_min cannot be greater than status_max")
        log_filter = LogFilter(
            hours=hours,
            status_min=status_min,
            status_max=status_max,
            path=path,
            record_type=record_type,
            query_success=query_success,
        )
        logs = self.dao.get_logs_with_filters(log_filter, limit=limit, offset=offset)
        total = self.dao.count_logs_with_filters(log_filter)
        return LogPage(total=total, logs=[LogRead.model_validate(log) for log in logs])

    def get_error_logs(self, limit: int = 50, hours: int = 24) -> LogPage:
        """Requests answered with a 4xx or 5xx status."""
        return self.get_logs(limit=limit, hours=hours, status_min=ERROR_STATUS_MIN)

    def get_failed_query_logs(self, limit: int = 50, hours: int = 24, record_type: Optional[str] = None) -> LogPage:
        """Query calls whose envelope reported ``success: false`` (answered 200)."""
        return self.get_logs(limit=limit, hours=hours, record_type=record_type, query_success=False)
