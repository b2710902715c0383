"""Health check responder."""

from wpcloudsql.health.responder import (
    HEALTH_CHECK_PATH,
    DatabaseProbe,
    HealthCheckResult,
    HealthStatus,
    check_health,
    is_probe_success,
)

__all__ = [
    "HEALTH_CHECK_PATH",
    "DatabaseProbe",
    "HealthCheckResult",
    "HealthStatus",
    "check_health",
    "is_probe_success",
]
