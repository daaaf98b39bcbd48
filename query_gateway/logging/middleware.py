"""Request logging middleware: every API call is stored in the log table in a background task."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from query_gateway.logging.recorder import RequestLogRecorder

logger = logging.getLogger(__name__)

EXCLUDED_PATHS = ("/api/logs", "/api/docs", "/api/openapi.json")


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self._recorder = None

    def recorder(self, request: Request) -> RequestLogRecorder:
        # Built lazily: the session factory lives on app.state, which is set after middleware registration
        if self._recorder is None:
            self._recorder = RequestLogRecorder(request.app.state.session_factory)
            logger.info(
                f"Request logging enabled for {self._recorder.username} on {self._recorder.hostname}, "
                f"App ID: {self._recorder.application_id}"
            )
        return self._recorder

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.startswith(EXCLUDED_PATHS):
            return await call_next(request)

        start_time = time.time()

        # --- Read request body, then reconstruct the stream ---
        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")
        request.state.request_body = request_body

        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code

        response_body = b""
        if isinstance(response, Response) and hasattr(response, "body"):
            response_body = response.body
        elif hasattr(response, "body_iterator"):
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()

        is_html = "text/html" in response.headers.get("content-type", "")
        recorder = self.recorder(request)

        def log_to_db():
            if response_body and not (is_html and status_code < 400):
                body_to_log = response_body.decode("utf-8", errors="ignore")
            elif is_html:
                body_to_log = "[HTML content not logged for successful response]"
            else:
                body_to_log = "[Response body not available]"
            recorder.record(
                request,
                status_code=status_code,
                response_body=body_to_log,
                request_body=request_body,
                processing_time=duration_ms,
            )

        response.background = getattr(response, "background", None) or BackgroundTask(log_to_db)
        return response
