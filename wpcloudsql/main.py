"""FastAPI application entry point with lifespan management.

Run with ``uvicorn wpcloudsql.main:create_app --factory``.

Startup: configure logging, apply the memory hint, wait for the database
(bounded retries). Shutdown: log query totals when enabled, close the
upstream client, dispose the connection pool.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from wpcloudsql.config.connection import resolve_connection
from wpcloudsql.config.header_policy import load_header_policy
from wpcloudsql.config.settings import GatewaySettings
from wpcloudsql.db.database import Database
from wpcloudsql.db.query_stats import log_query_stats
from wpcloudsql.health.responder import DatabaseProbe
from wpcloudsql.logging_config import configure_logging
from wpcloudsql.middleware.error_handler import DatabaseUnavailableError, register_error_handlers
from wpcloudsql.middleware.forwarded_proto import ForwardedProtoMiddleware
from wpcloudsql.middleware.health_check import HealthCheckMiddleware
from wpcloudsql.middleware.request_id import RequestIdMiddleware
from wpcloudsql.middleware.security_headers import SecurityHeadersMiddleware
from wpcloudsql.middleware.upload_limit import UploadLimitMiddleware
from wpcloudsql.routers.upstream import create_upstream_router
from wpcloudsql.startup import apply_memory_limit, warn_on_placeholders

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown logic."""
    settings: GatewaySettings = app.state.settings
    database: Database = app.state.database
    upstream_client: httpx.AsyncClient | None = app.state.upstream_client

    configure_logging(settings.log_level)
    logger.info(
        "Starting edge service on port %d (%s connection to %s)",
        settings.port,
        app.state.connection.mode.value,
        app.state.connection.host,
    )

    apply_memory_limit(settings)
    warn_on_placeholders(settings)

    try:
        await run_in_threadpool(database.wait_until_available)
    except DatabaseUnavailableError:
        if settings.require_database_on_startup:
            raise
        logger.warning("Starting without a database connection; /health-check will report 503")

    logger.info("Edge service started successfully")

    yield

    # --- Shutdown ---
    logger.info("Shutting down edge service…")

    if settings.debug and settings.save_queries:
        log_query_stats(database.query_stats)

    if upstream_client is not None:
        await upstream_client.aclose()

    database.dispose()

    logger.info("Edge service shut down")


def create_app(
    settings: GatewaySettings | None = None,
    *,
    database: Database | None = None,
    probe: DatabaseProbe | None = None,
    upstream_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Settings and the database connection are resolved eagerly, so placeholder
    values (e.g. a private host that was never filled in) abort startup here
    instead of surfacing at the first connection attempt.
    """
    if settings is None:
        settings = GatewaySettings()  # type: ignore[call-arg]
    connection = resolve_connection(settings.db_connection_type, settings)
    header_policy = load_header_policy(settings.header_policy_path)

    if database is None:
        database = Database(
            connection,
            timeout=settings.db_timeout,
            retry_attempts=settings.db_retry_attempts,
            retry_delay=settings.db_retry_delay,
            save_queries=settings.save_queries,
        )

    if upstream_client is None and settings.upstream_url:
        upstream_client = httpx.AsyncClient(
            base_url=settings.upstream_url,
            timeout=settings.upstream_timeout_seconds,
            follow_redirects=False,
        )

    app = FastAPI(
        title="WordPress Cloud SQL Edge",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.connection = connection
    app.state.database = database
    app.state.upstream_client = upstream_client

    # Register error handlers
    register_error_handlers(app, debug=settings.debug)

    if upstream_client is not None:
        app.include_router(
            create_upstream_router(client=upstream_client, max_body_bytes=settings.max_upload_bytes)
        )

    # Middleware (order: request_id → security_headers → forwarded_proto →
    # upload_limit → health_check → routes)
    # Note: Starlette middleware is applied in reverse order of add_middleware calls
    app.add_middleware(
        HealthCheckMiddleware,
        probe=probe or database.probe,
        timeout=settings.health_check_timeout_seconds,
    )
    app.add_middleware(UploadLimitMiddleware, max_bytes=settings.max_upload_bytes)
    app.add_middleware(
        ForwardedProtoMiddleware,
        trust_forwarded_headers=settings.trust_forwarded_headers,
        trusted_proxies=settings.trusted_proxies,
        force_ssl_admin=settings.force_ssl_admin,
        admin_paths=header_policy.admin_paths,
    )
    app.add_middleware(SecurityHeadersMiddleware, headers=header_policy.security_headers)
    app.add_middleware(RequestIdMiddleware)

    return app
