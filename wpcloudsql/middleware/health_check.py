"""Health check interceptor for load balancers.

Requests whose path is exactly ``/health-check`` (any method) are answered
here and never reach the routes; every other request passes through
untouched.
"""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import PlainTextResponse, Response

from wpcloudsql.health.responder import HEALTH_CHECK_PATH, DatabaseProbe, check_health


class HealthCheckMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,  # noqa: ANN001
        probe: DatabaseProbe,
        timeout: float | None = None,
        path: str = HEALTH_CHECK_PATH,
    ) -> None:
        super().__init__(app)
        self._probe = probe
        self._timeout = timeout
        self._path = path

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path != self._path:
            return await call_next(request)

        result = await check_health(self._probe, timeout=self._timeout)
        return PlainTextResponse(result.body, status_code=result.http_code)
