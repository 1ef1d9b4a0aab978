"""
Global middleware and exception handlers.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from connectors.errors import (
    ConnectorConfigError,
    ConnectorDataError,
    ConnectorError,
    MissingConnectorDataError,
    NoUsableEmailError,
    NotAuthorizedError,
    OAuth2Error,
    RedirectURIMismatchError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

# Most specific first.
_STATUS_BY_ERROR = (
    (ConnectorConfigError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (NotAuthorizedError, status.HTTP_403_FORBIDDEN),
    (NoUsableEmailError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (OAuth2Error, status.HTTP_400_BAD_REQUEST),
    (RedirectURIMismatchError, status.HTTP_400_BAD_REQUEST),
    (MissingConnectorDataError, status.HTTP_400_BAD_REQUEST),
    (ConnectorDataError, status.HTTP_400_BAD_REQUEST),
)


def status_for_error(exc: ConnectorError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.debug("%s %s — %.3fs", request.method, request.url.path, elapsed)
        return response


def register_exception_handlers(app: FastAPI) -> None:
    """Turn connector errors into JSON responses."""

    @app.exception_handler(ConnectorError)
    async def connector_error_handler(request: Request, exc: ConnectorError) -> JSONResponse:
        code = status_for_error(exc)
        logger.warning("%s %s failed (%d): %s", request.method, request.url.path, code, exc)
        return JSONResponse(
            status_code=code,
            content={"error": type(exc).__name__, "detail": exc.message},
        )
