"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request, emitted after the response is known:

    127.0.0.1 - - [19/Oct/2026:12:00:00 +0000] "POST /users" 200 37 0.41ms

or, with log_format="json":

    {"request_id": "1f2e3d4c", "method": "POST", "path": "/users", ...}

Only method, path, client, status, size and timing are recorded. Request
bodies are never logged: they carry passwords.

Failures that escape the handler are logged with their exception type and
re-raised untouched; turning them into a 500 is the Application's job.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


# Namespaced so it can be routed separately from application logs:
#   logging.getLogger("kvservice.access").addHandler(file_handler)
logger = logging.getLogger("kvservice.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache combined-log style line."""
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be first in the pipeline so it times and records everything,
    including requests that end in an error response.

        pipeline.add(LoggingMiddleware(log_format="json"))

    Error responses (4xx/5xx) are logged one level above log_level so
    they stand out.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            include_request_id: Add an X-Request-ID header to responses.
            log_level: Level for successful requests.
            skip_paths: Paths not worth a log line, e.g. ["/worker-version"].
        """
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {request.path} raised "
                f"{type(e).__name__}: {e} after {_elapsed_ms(started):.2f}ms"
            )
            raise

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in self.skip_paths:
            entry = self._entry(request_id, request, response, _elapsed_ms(started))
            self._emit(entry, HTTPStatus(response.status).is_error)

        return response

    def _entry(
        self,
        request_id: str,
        request: HTTPRequest,
        response: HTTPResponse,
        duration_ms: float,
    ) -> RequestLog:
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _emit(self, entry: RequestLog, is_error: bool) -> None:
        level = self.log_level
        if is_error:
            level = min(level + 10, logging.CRITICAL)

        message = json.dumps(entry.to_dict()) if self.log_format == "json" else entry.to_text()
        logger.log(level, message)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
