"""Rejects requests whose declared body size exceeds the upload limit."""

from __future__ import annotations

import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from wpcloudsql.middleware.error_handler import PayloadTooLargeError, _envelope

logger = logging.getLogger(__name__)


class UploadLimitMiddleware(BaseHTTPMiddleware):
    """413 for any request with ``Content-Length`` above ``max_bytes``.

    A limit of 0 disables the check.
    """

    def __init__(self, app, max_bytes: int) -> None:  # noqa: ANN001
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        declared = request.headers.get("content-length")
        if self._max_bytes and declared and declared.isdigit() and int(declared) > self._max_bytes:
            logger.warning(
                "Rejected upload of %s bytes (limit %d)",
                declared,
                self._max_bytes,
                extra={"path": request.url.path},
            )
            return _envelope(
                status_code=PayloadTooLargeError.status_code,
                error=PayloadTooLargeError.message,
                meta={"max_bytes": self._max_bytes},
            )
        return await call_next(request)
