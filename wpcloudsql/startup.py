"""Process-level startup configuration.

Kept apart from connection resolution: the memory limit is a property of the
process, not of the database connection.
"""

from __future__ import annotations

import logging
import re

from wpcloudsql.config.settings import PASSWORD_PLACEHOLDER, GatewaySettings
from wpcloudsql.middleware.error_handler import ConfigurationError

logger = logging.getLogger(__name__)

_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*([kmg]?)\s*$", re.IGNORECASE)
_MULTIPLIERS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3}


def parse_size(value: str) -> int:
    """Convert a PHP-style shorthand size ("256M", "1g", "512k", "1024") to bytes."""
    match = _SIZE_PATTERN.match(value)
    if not match:
        raise ConfigurationError(f"Invalid size {value!r}", value=value)
    number, unit = match.groups()
    return int(number) * _MULTIPLIERS[unit.lower()]


def apply_memory_limit(settings: GatewaySettings) -> int:
    """Log the memory hint and, when enforcement is enabled, cap the address space.

    Returns the limit in bytes.
    """
    limit = parse_size(settings.memory_limit)
    if not settings.enforce_memory_limit:
        logger.info("Memory limit hint: %s (%d bytes, not enforced)", settings.memory_limit, limit)
        return limit

    import resource

    _soft, hard = resource.getrlimit(resource.RLIMIT_AS)
    if hard != resource.RLIM_INFINITY and limit > hard:
        limit = hard
    resource.setrlimit(resource.RLIMIT_AS, (limit, hard))
    logger.info("Memory limit set to %d bytes", limit)
    return limit


def warn_on_placeholders(settings: GatewaySettings) -> None:
    """Warn about template values that still need an operator's attention."""
    password = settings.db_password.get_secret_value()
    if not password or password == PASSWORD_PLACEHOLDER:
        logger.warning(
            "WP_DB_PASSWORD is empty or still the template placeholder. "
            "Set WP_DB_PASSWORD for production use."
        )
    if settings.trust_forwarded_headers and not settings.trusted_proxies:
        logger.warning(
            "WP_TRUST_FORWARDED_HEADERS is enabled but WP_TRUSTED_PROXIES is empty; "
            "X-Forwarded-Proto will be ignored"
        )
