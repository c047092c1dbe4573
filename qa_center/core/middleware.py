"""Request logging middleware."""
from __future__ import annotations

import time
import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


logger = logging.getLogger(__name__)
EXCLUDE_PATHS = {"/health", "/docs", "/openapi.json"}


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log ``METHOD path status duration_ms`` for each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            path = request.url.path
            if path not in EXCLUDE_PATHS:
                duration_ms = int((time.time() - start) * 1000)
                level = logging.WARNING if status_code >= 500 else logging.INFO
                logger.log(level, f"{request.method} {path} {status_code} {duration_ms}ms")
