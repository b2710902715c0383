"""Trusted ``X-Forwarded-Proto`` handling.

The HTTPS load balancer terminates TLS and forwards plain HTTP with
``X-Forwarded-Proto: https``. That header is only honored when
``trust_forwarded_headers`` is enabled AND the immediate peer is one of the
configured trusted proxies; otherwise it is ignored, so a client cannot
claim a secure connection by sending the header itself.

The resolved flag is stored in ``request.state.is_secure`` and the ASGI scope
scheme is upgraded to ``https`` for downstream handlers. With
``force_ssl_admin`` enabled, insecure requests to the admin area are
redirected to HTTPS.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import RedirectResponse, Response

from wpcloudsql.validators.address import is_trusted_peer, parse_networks

logger = logging.getLogger(__name__)


def _is_admin_path(path: str, admin_paths: Iterable[str]) -> bool:
    for prefix in admin_paths:
        if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return True
    return False


class ForwardedProtoMiddleware(BaseHTTPMiddleware):
    """Marks requests secure based on trusted proxy headers."""

    def __init__(
        self,
        app,  # noqa: ANN001
        *,
        trust_forwarded_headers: bool = False,
        trusted_proxies: Iterable[str] = (),
        force_ssl_admin: bool = False,
        admin_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self._trust = trust_forwarded_headers
        self._networks = parse_networks(trusted_proxies)
        self._force_ssl_admin = force_ssl_admin
        self._admin_paths = list(admin_paths)

    def resolve_secure(self, request: Request) -> bool:
        if request.url.scheme == "https":
            return True

        # Proxies append to the chain; only the last hop is the trusted peer's own value.
        forwarded = request.headers.get("x-forwarded-proto", "").rsplit(",", 1)[-1].strip().lower()
        if forwarded != "https":
            return False

        peer = request.client.host if request.client else None
        if self._trust and is_trusted_peer(peer, self._networks):
            return True

        logger.debug(
            "Ignoring X-Forwarded-Proto from untrusted peer %s",
            peer,
            extra={"peer": peer},
        )
        return False

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        is_secure = self.resolve_secure(request)
        request.state.is_secure = is_secure

        if not is_secure and self._force_ssl_admin and _is_admin_path(
            request.url.path, self._admin_paths
        ):
            return RedirectResponse(str(request.url.replace(scheme="https")), status_code=301)

        if is_secure:
            request.scope["scheme"] = "https"

        return await call_next(request)
