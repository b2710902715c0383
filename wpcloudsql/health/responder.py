"""Database-backed liveness check for the load balancer.

The probe is any zero-argument callable that runs ``SELECT 1`` and returns
the scalar. It is synchronous (it borrows a pooled DB connection), so it is
executed on the default thread pool executor and bounded by a timeout.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

HEALTH_CHECK_PATH = "/health-check"

OK_BODY = "OK"
FAILED_BODY = "Database connection failed"

DatabaseProbe = Callable[[], object]


class HealthStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class HealthCheckResult:
    """Outcome of a single health check request."""

    status: HealthStatus
    http_code: int

    @property
    def body(self) -> str:
        return OK_BODY if self.status is HealthStatus.OK else FAILED_BODY


HEALTHY = HealthCheckResult(status=HealthStatus.OK, http_code=200)
UNHEALTHY = HealthCheckResult(status=HealthStatus.FAILED, http_code=503)


def is_probe_success(value: object) -> bool:
    """``SELECT 1`` succeeded if it came back as "1" (or 1 from drivers that type it)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == 1
    return value == "1"


async def check_health(probe: DatabaseProbe, timeout: float | None = None) -> HealthCheckResult:
    """Run the probe once and map the outcome to OK/200 or FAILED/503.

    Probe exceptions and timeouts never propagate; they are logged and
    reported as FAILED.
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, probe)
    # A probe raising TimeoutError itself is a probe failure, not an expired wait.
    done, _pending = await asyncio.wait({future}, timeout=timeout)
    if not done:
        future.cancel()
        logger.warning(
            "Health check probe timed out after %ss",
            timeout,
            extra={"error_reason": "timeout"},
        )
        return UNHEALTHY

    try:
        value = future.result()
    except Exception as exc:
        logger.warning(
            "Health check probe failed: %s",
            exc,
            extra={"error_reason": type(exc).__name__},
        )
        return UNHEALTHY

    if is_probe_success(value):
        return HEALTHY

    logger.warning("Health check probe returned %r", value, extra={"error_reason": "unexpected_result"})
    return UNHEALTHY
