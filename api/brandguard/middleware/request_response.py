"""Request/Response middleware.

Assigns every request an id (or accepts the caller's `X-Request-ID`), binds
it to the logging context, logs the request and its outcome, and reports
processing time in a response header.
"""

from __future__ import annotations

import re
import time
import logging
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.structured_logging import request_id_var, workspace_id_var

logger = logging.getLogger(__name__)

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")
_WORKSPACE_PATH_RE = re.compile(r"^/workspaces/([^/]+)")


class RequestResponseMiddleware(BaseHTTPMiddleware):
    """Request id, timing and access logging."""

    def __init__(self, app: ASGIApp, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get("x-request-id", "")
        request_id = incoming if _REQUEST_ID_RE.match(incoming) else str(uuid4())
        request.state.request_id = request_id
        request_token = request_id_var.set(request_id)

        match = _WORKSPACE_PATH_RE.match(request.url.path)
        workspace_token = workspace_id_var.set(match.group(1) if match else None)

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                extra={"method": request.method, "path": request.url.path},
            )
            raise
        finally:
            request_id_var.reset(request_token)
            workspace_id_var.reset(workspace_token)

        processing_time_ms = int((time.time() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time-Ms"] = str(processing_time_ms)

        if self.log_requests:
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "processing_time_ms": processing_time_ms,
                    "client_ip": self._get_client_ip(request),
                },
            )
        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"
