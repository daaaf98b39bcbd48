# query_gateway/query/execution_log_dao.py
"""Data Access Object for query execution logs."""

from typing import List, Optional

from sqlalchemy.orm import Session

from query_gateway.core.base_dao import BaseDAO
from query_gateway.query.models import QueryExecutionLog

MAX_ERROR_MESSAGE_LENGTH = 1000


class QueryExecutionLogDAO(BaseDAO[QueryExecutionLog]):
    """DAO for query execution log operations."""

    def __init__(self, db_session: Session):
        super().__init__(QueryExecutionLog, db_session)

    def log_execution(
        self,
        record_type: str,
        success: bool,
        page_size: Optional[int] = None,
        page_index: Optional[int] = None,
        use_pagination: bool = True,
        row_count: Optional[int] = None,
        total_records: Optional[int] = None,
        execution_time_ms: Optional[float] = None,
        error_type: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> QueryExecutionLog:
        """Store one execution with its metrics."""
        if execution_time_ms is not None and execution_time_ms < 0:
            execution_time_ms = 0.0

        # Truncate error message if too long
        if error_message and len(error_message) > MAX_ERROR_MESSAGE_LENGTH:
            error_message = error_message[: MAX_ERROR_MESSAGE_LENGTH - 3] + "..."

        return self.create(
            QueryExecutionLog(
                record_type=record_type or "",
                page_size=page_size,
                page_index=page_index,
                use_pagination=use_pagination,
                row_count=row_count,
                total_records=total_records,
                execution_time_ms=execution_time_ms,
                success=success,
                error_type=error_type,
                error_message=error_message,
            )
        )

    def get_recent_executions(
        self, limit: int = 100, record_type: Optional[str] = None, success: Optional[bool] = None
    ) -> List[QueryExecutionLog]:
        """Recent executions across all record types, most recent first."""
        return self.get_recent("executed_at", limit=limit, record_type=record_type, success=success)
