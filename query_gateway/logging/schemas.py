"""Pydantic schemas for the request log API."""
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class LogRead(BaseModel):
    """A stored request log row."""
    id: int
    timestamp: Optional[datetime] = None
    method: str
    path: str
    status_code: int
    client_ip: Optional[str] = None
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    processing_time: Optional[float] = None  # in milliseconds
    record_type: Optional[str] = None
    query_success: Optional[bool] = None
    query_error_type: Optional[str] = None
    user_agent: Optional[str] = None
    username: Optional[str] = None
    hostname: Optional[str] = None
    application_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LogPage(BaseModel):
    total: int
    logs: List[LogRead]
