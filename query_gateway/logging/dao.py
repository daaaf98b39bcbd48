"""Data Access Object for request logs using BaseDAO."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from query_gateway.core.base_dao import BaseDAO
from query_gateway.logging.models import Log


@dataclass(frozen=True)
class LogFilter:
    """Time window plus optional status, path and query outcome constraints."""

    hours: int = 24
    status_min: Optional[int] = None
    status_max: Optional[int] = None
    path: Optional[str] = None
    record_type: Optional[str] = None
    query_success: Optional[bool] = None


class LogDAO(BaseDAO[Log]):
    """DAO for Log operations."""

    def __init__(self, db_session: Session):
        super().__init__(Log, db_session)

    def _windowed(self, query, log_filter: LogFilter):
        time_threshold = datetime.now() - timedelta(hours=log_filter.hours)
        query = query.where(self.model.timestamp >= time_threshold)
        if log_filter.status_min is not None:
            query = query.where(self.model.status_code >= log_filter.status_min)
        if log_filter.status_max is not None:
            query = query.where(self.model.status_code <= log_filter.status_max)
        if log_filter.path:
            query = query.where(self.model.path.startswith(log_filter.path))
        if log_filter.record_type:
            query = query.where(func.lower(self.model.record_type) == log_filter.record_type.strip().lower())
        if log_filter.query_success is not None:
            query = query.where(self.model.query_success == log_filter.query_success)
        return query

    def get_logs_with_filters(self, log_filter: LogFilter, limit: int = 50, offset: int = 0) -> List[Log]:
        """Logs within the time window, most recent first."""
        query = self._windowed(select(self.model), log_filter)
        query = query.order_by(self.model.timestamp.desc(), self.model.id.desc()).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def count_logs_with_filters(self, log_filter: LogFilter) -> int:
        query = self._windowed(select(func.count()).select_from(self.model), log_filter)
        return self.db.execute(query).scalar_one()
