"""Security header policy model and YAML loader.

The policy lists the response headers added to every response and the
admin paths that ``force_ssl_admin`` applies to.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "1; mode=block",
}

DEFAULT_ADMIN_PATHS: list[str] = ["/wp-admin", "/wp-login.php"]


class HeaderPolicy(BaseModel):
    """Headers emitted on every response plus the admin area prefixes."""

    security_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_SECURITY_HEADERS)
    )
    admin_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_ADMIN_PATHS))


def load_header_policy(yaml_path: str) -> HeaderPolicy:
    """Parse a header policy YAML file.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        The parsed policy. A missing, unreadable or invalid file yields the
        built-in default policy.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Header policy file not found at %s — using built-in defaults", yaml_path)
        return HeaderPolicy()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse header policy YAML at %s: %s", yaml_path, exc)
        return HeaderPolicy()

    if not isinstance(raw, dict):
        logger.warning("Header policy YAML at %s is not a mapping — using built-in defaults", yaml_path)
        return HeaderPolicy()

    try:
        return HeaderPolicy.model_validate(raw)
    except Exception as exc:
        logger.error("Invalid header policy at %s: %s — using built-in defaults", yaml_path, exc)
        return HeaderPolicy()
