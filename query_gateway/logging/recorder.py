# query_gateway/logging/recorder.py
"""Writes request log rows for the middleware and the exception handlers."""

import getpass
import json
import logging
import os
import platform
import socket
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from query_gateway.core.config import get_settings
from query_gateway.logging.models import Log

logger = logging.getLogger(__name__)


def current_username() -> str:
    try:
        return os.environ.get("USER") or os.environ.get("USERNAME") or getpass.getuser() or "unknown_user"
    except (KeyError, OSError):
        return "unknown_user"


def current_hostname() -> str:
    try:
        return socket.gethostname() or platform.node() or "unknown_host"
    except OSError:
        return "unknown_host"


def safe_json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, default=str)


@dataclass(frozen=True)
class QueryOutcome:
    """Envelope result of a query call, kept on ``request.state`` for the request log."""

    record_type: Optional[str]
    success: Optional[bool]
    error_type: Optional[str]

    @classmethod
    def from_envelope(cls, envelope: Dict[str, Any]) -> "QueryOutcome":
        return cls(
            record_type=envelope.get("recordType"),
            success=envelope.get("success"),
            error_type=envelope.get("errorType"),
        )


def remember_query_outcome(request: Request, envelope: Dict[str, Any]) -> None:
    request.state.query_outcome = QueryOutcome.from_envelope(envelope)


def stored_query_outcome(request: Request) -> Optional[QueryOutcome]:
    return getattr(request.state, "query_outcome", None)


class RequestLogRecorder:
    """Persists Log rows through a session factory; storage failures are logged, never raised."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        username: Optional[str] = None,
        hostname: Optional[str] = None,
        application_id: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.username = username or current_username()
        self.hostname = hostname or current_hostname()
        self.application_id = application_id or get_settings().application_id

    def record(
        self,
        request: Request,
        status_code: int,
        response_body: str,
        request_body: Optional[str] = None,
        processing_time: Optional[float] = None,
    ) -> None:
        outcome = stored_query_outcome(request)
        log = Log(
            timestamp=datetime.now(),
            method=request.method,
            path=str(request.url.path),
            status_code=status_code,
            client_ip=request.client.host if request.client else None,
            request_headers=json.dumps(dict(request.headers)),
            request_body=request_body if request_body is not None else stored_request_body(request),
            response_body=response_body,
            processing_time=processing_time,
            record_type=outcome.record_type if outcome else None,
            query_success=outcome.success if outcome else None,
            query_error_type=outcome.error_type if outcome else None,
            user_agent=request.headers.get("user-agent"),
            username=self.username,
            hostname=self.hostname,
            application_id=self.application_id,
        )
        try:
            with self.session_factory() as session:
                session.add(log)
                session.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to write request log for {request.method} {request.url.path}: {e}")


def stored_request_body(request: Request) -> str:
    """Request body captured by LoggingMiddleware, if it ran for this request."""
    return getattr(request.state, "request_body", None) or "[Request body not captured]"


def recorder_for(request: Request) -> RequestLogRecorder:
    """Recorder bound to the application's config session factory."""
    return RequestLogRecorder(request.app.state.session_factory)
