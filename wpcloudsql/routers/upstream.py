"""Passthrough to the WordPress upstream.

Every request that is not answered by the middleware stack is forwarded to
the upstream with ``httpx``. Hop-by-hop headers are dropped in both
directions. ``X-Forwarded-Proto`` and ``X-Forwarded-For`` are rebuilt from
the trusted-proxy resolution, never copied from the client.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Request
from starlette.responses import Response

from wpcloudsql.middleware.error_handler import PayloadTooLargeError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

_HOP_BY_HOP = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}

# Rebuilt by the gateway or by httpx
_FORWARDED = {"x-forwarded-proto", "x-forwarded-for", "forwarded", "host", "content-length"}

# httpx already decoded the body
_RESPONSE_DROP = _HOP_BY_HOP | {"content-encoding", "content-length"}

_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _request_headers(request: Request) -> list[tuple[str, str]]:
    headers = [
        (name, value)
        for name, value in request.headers.items()
        if name.lower() not in _HOP_BY_HOP | _FORWARDED
    ]
    secure = getattr(request.state, "is_secure", request.url.scheme == "https")
    headers.append(("x-forwarded-proto", "https" if secure else "http"))
    if request.client:
        headers.append(("x-forwarded-for", request.client.host))
    if "host" in request.headers:
        headers.append(("x-forwarded-host", request.headers["host"]))
    return headers


async def _read_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, counting streamed bytes against ``max_bytes`` (0 = unlimited).

    Chunked uploads carry no Content-Length, so the declared-size check in
    UploadLimitMiddleware cannot see them.
    """
    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if max_bytes and received > max_bytes:
            logger.warning(
                "Rejected streamed upload over %d bytes",
                max_bytes,
                extra={"path": request.url.path},
            )
            raise PayloadTooLargeError(max_bytes=max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


def create_upstream_router(*, client: httpx.AsyncClient, max_body_bytes: int = 0) -> APIRouter:
    """Factory that creates the catch-all router bound to an upstream client.

    ``client`` must have ``base_url`` set to the WordPress backend.
    """

    upstream_router = APIRouter(tags=["upstream"])

    @upstream_router.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def forward(request: Request) -> Response:
        # Raw path keeps the client's percent-encoding intact.
        raw_path = request.scope.get("raw_path", b"").decode("latin-1").split("?", 1)[0]
        target = raw_path or request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        body = await _read_body(request, max_body_bytes)
        try:
            upstream = await client.request(
                request.method,
                target,
                headers=_request_headers(request),
                content=body,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "Upstream request failed for %s %s: %s",
                request.method,
                request.url.path,
                exc,
                extra={"path": request.url.path, "error_reason": type(exc).__name__},
            )
            raise UpstreamUnavailableError() from exc

        headers = [
            (name, value)
            for name, value in upstream.headers.multi_items()
            if name.lower() not in _RESPONSE_DROP
        ]
        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in headers:
            response.headers.append(name, value)
        return response

    return upstream_router
