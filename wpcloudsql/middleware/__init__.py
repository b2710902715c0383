"""Middleware package — error hierarchy, health check, headers and proxies."""

from wpcloudsql.middleware.error_handler import (
    ConfigurationError,
    DatabaseUnavailableError,
    GatewayError,
    PayloadTooLargeError,
    ProbeError,
    UpstreamUnavailableError,
    register_error_handlers,
)
from wpcloudsql.middleware.forwarded_proto import ForwardedProtoMiddleware
from wpcloudsql.middleware.health_check import HealthCheckMiddleware
from wpcloudsql.middleware.request_id import RequestIdMiddleware
from wpcloudsql.middleware.security_headers import SecurityHeadersMiddleware
from wpcloudsql.middleware.upload_limit import UploadLimitMiddleware

__all__ = [
    "ConfigurationError",
    "DatabaseUnavailableError",
    "ForwardedProtoMiddleware",
    "GatewayError",
    "HealthCheckMiddleware",
    "PayloadTooLargeError",
    "ProbeError",
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "UpstreamUnavailableError",
    "UploadLimitMiddleware",
    "register_error_handlers",
]
