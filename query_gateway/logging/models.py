"""Request log table: one row per HTTP call handled by the gateway."""

from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from query_gateway.core.database import Base


class Log(Base):
    """
    One HTTP request with its response and timing.

    Query calls also carry the envelope outcome, since a failed query still
    answers 200: ``record_type``, ``query_success`` and ``query_error_type``
    are empty for every other path.
    """

    __tablename__ = "request_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)

    # ===== HTTP EXCHANGE =====
    method = Column(String, nullable=False)
    path = Column(String, nullable=False)
    status_code = Column(Integer, nullable=False)
    request_headers = Column(String, nullable=True)
    request_body = Column(String, nullable=True)
    response_body = Column(String, nullable=True)
    processing_time = Column(Float, nullable=True)  # milliseconds

    # ===== QUERY OUTCOME =====
    record_type = Column(String, nullable=True, index=True)
    query_success = Column(Boolean, nullable=True)
    query_error_type = Column(String, nullable=True)

    # ===== CALLER AND HOST =====
    client_ip = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    username = Column(String, nullable=True)
    hostname = Column(String, nullable=True)
    application_id = Column(String, nullable=True)
