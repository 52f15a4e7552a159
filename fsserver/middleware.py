"""
Middleware for fsserver

Order, outermost first: access log, unhandled exception guard, upload size
limit. The size check sits closest to the routes but still runs before any
body is read.
"""

import logging
import time
from typing import Callable, Optional
from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .models import COMMON_SERVER_ERROR_MESSAGE_SUFFIX
from .utils import format_duration

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Best-effort client address for logging"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "-"


def _access_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request, leveled by status class"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        status_code = 500
        size = "-"

        try:
            response = await call_next(request)
            status_code = response.status_code
            size = response.headers.get("content-length", "-")
            return response
        finally:
            elapsed = format_duration(time.perf_counter() - started)
            logger.log(
                _access_level(status_code),
                f"ACCESS {get_client_ip(request)} {request.method} {request.url.path} "
                f"{status_code} {size}B {elapsed}"
            )


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turns anything the routes did not map into a plain-text 500"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unhandled error serving {request.method} {request.url.path}: {e}")
            return PlainTextResponse(
                "Unexpected server error." + COMMON_SERVER_ERROR_MESSAGE_SUFFIX,
                status_code=500
            )


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects uploads announcing a body larger than the configured limit

    The check runs before the body is read, so a client waiting on
    ``Expect: 100-continue`` gets the 413 without sending its payload.
    """

    def __init__(self, app: FastAPI, max_bytes: int, limit_display: str):
        super().__init__(app)
        self.max_bytes = max_bytes
        self.limit_display = limit_display

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "POST":
            content_length = self._content_length(request)
            if content_length is not None and content_length > self.max_bytes:
                logger.warning(
                    f"Rejected upload to {request.url.path}: "
                    f"{content_length} bytes exceeds {self.limit_display}"
                )
                return PlainTextResponse(
                    f"File too large (max: {self.limit_display})",
                    status_code=413
                )

        return await call_next(request)

    @staticmethod
    def _content_length(request: Request) -> Optional[int]:
        value = request.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None


def setup_middleware(app: FastAPI):
    """Install the middleware stack on the application"""

    # Starlette wraps in reverse order of registration
    app.add_middleware(
        UploadSizeLimitMiddleware,
        max_bytes=app.state.max_upload_bytes,
        limit_display=app.state.config.storage.maxUploadSize
    )
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(AccessLogMiddleware)

    logger.debug("Middleware installed: access log, exception guard, upload size limit")
