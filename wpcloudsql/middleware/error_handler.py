"""Global error hierarchy and FastAPI exception handlers.

All gateway-specific errors extend GatewayError. The FastAPI exception handlers
catch these errors (plus unhandled exceptions) and return a consistent JSON
envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class GatewayError(Exception):
    """Base error for all gateway-specific errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(GatewayError):
    """Settings still hold placeholder values or are otherwise unusable."""

    status_code = 500
    message = "Invalid configuration"


class ProbeError(GatewayError):
    """Database unreachable during a health check."""

    status_code = 503
    message = "Database connection failed"


class DatabaseUnavailableError(GatewayError):
    """Database could not be reached after all connection attempts."""

    status_code = 500
    message = "Database connection error. Please try again later."


class UpstreamUnavailableError(GatewayError):
    """WordPress upstream refused the connection or timed out."""

    status_code = 502
    message = "Upstream site unavailable"


class PayloadTooLargeError(GatewayError):
    """Request body exceeds the configured upload limit."""

    status_code = 413
    message = "Request body too large"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


def _make_gateway_error_handler(debug: bool):
    async def _gateway_error_handler(_request: Request, exc: GatewayError) -> JSONResponse:
        """Handle GatewayError subclasses."""
        meta = dict(exc.details) if exc.details else None
        if isinstance(exc, DatabaseUnavailableError):
            logger.error(
                "Database connection error: %s",
                exc.details.get("reason", exc.message),
                extra={"error_reason": exc.details.get("reason")},
            )
            # Driver errors can carry host names; only surface them in debug mode.
            meta = {"reason": str(exc.details["reason"])} if debug and "reason" in exc.details else None
        return _envelope(exc.status_code, exc.message, meta=meta)

    return _gateway_error_handler


def unhandled_error_response(exc: Exception) -> JSONResponse:
    """Log the traceback of an unexpected error and build the generic 500 envelope."""
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
    return _envelope(status_code=500, error="Internal server error")


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log traceback, return generic 500."""
    return unhandled_error_response(exc)


# ---------------------------------------------------------------------------
# Registration helper
# ---------------------------------------------------------------------------


def register_error_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(GatewayError, _make_gateway_error_handler(debug))  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
