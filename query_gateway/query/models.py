# query_gateway/query/models.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float
from datetime import datetime
from query_gateway.core.database import Base


class QueryExecutionLog(Base):
    """Log of query executions with performance metrics."""

    __tablename__ = "query_execution_logs"

    id = Column(Integer, primary_key=True, index=True)
    record_type = Column(String, nullable=False, index=True)
    page_size = Column(Integer, nullable=True)
    page_index = Column(Integer, nullable=True)
    use_pagination = Column(Boolean, nullable=False, default=True)
    row_count = Column(Integer, nullable=True)
    total_records = Column(Integer, nullable=True)
    execution_time_ms = Column(Float, nullable=True)
    success = Column(Boolean, nullable=False)
    error_type = Column(String, nullable=True)
    error_message = Column(String, nullable=True)
    executed_at = Column(DateTime, default=datetime.now, index=True)
