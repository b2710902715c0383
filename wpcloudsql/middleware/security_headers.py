"""Security headers middleware.

Adds the configured headers (nosniff, SAMEORIGIN framing, XSS filter) to
every response. A header that an inner stage or the upstream already set is
kept as-is, so each header appears exactly once.

Unexpected exceptions from inner stages are rendered as the generic 500
envelope here rather than in Starlette's outermost error middleware, so
error responses carry the headers too.
"""

from __future__ import annotations

from collections.abc import Mapping

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from wpcloudsql.middleware.error_handler import unhandled_error_response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, headers: Mapping[str, str]) -> None:  # noqa: ANN001
        super().__init__(app)
        self._headers = dict(headers)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            response = unhandled_error_response(exc)
        for name, value in self._headers.items():
            response.headers.setdefault(name, value)
        return response
