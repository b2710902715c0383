"""Pydantic Settings for the WordPress Cloud SQL edge service.

All environment variables use the WP_ prefix.
Example: WP_DB_CONNECTION_TYPE=private, WP_DB_PRIVATE_HOST=10.20.0.3
"""

from __future__ import annotations

import ipaddress
from enum import Enum
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

# Sentinels left in the template until the operator fills them in.
PRIVATE_HOST_PLACEHOLDER = "YOUR_PRIVATE_IP"
PASSWORD_PLACEHOLDER = "YOUR_ROOT_PASSWORD"

DEFAULT_HEADER_POLICY_PATH = str(Path(__file__).with_name("header_policy.yaml"))


class ConnectionMode(str, Enum):
    """How the service reaches Cloud SQL."""

    PROXY = "proxy"
    PRIVATE = "private"


class GatewaySettings(BaseSettings):
    """Edge service configuration validated from environment variables."""

    # Service
    port: int = 8080
    log_level: str = "INFO"
    debug: bool = False
    save_queries: bool = False

    # Database
    db_connection_type: ConnectionMode = ConnectionMode.PROXY
    db_name: str = "wordpress"
    db_user: str = "root"
    db_password: SecretStr
    db_private_host: str = PRIVATE_HOST_PLACEHOLDER
    db_port: int = Field(default=3306, ge=1, le=65535)
    db_charset: str = "utf8mb4"
    db_collate: str = "utf8mb4_unicode_ci"

    # Connection tuning for Cloud SQL
    db_timeout: int = Field(default=30, ge=1)
    db_retry_attempts: int = Field(default=3, ge=1)
    db_retry_delay: float = Field(default=1.0, ge=0)
    require_database_on_startup: bool = False

    # Health check
    health_check_timeout_seconds: float = Field(default=5.0, gt=0)

    # Load balancer
    trust_forwarded_headers: bool = False
    trusted_proxies: list[str] = []  # IPs or CIDRs of terminating load balancers
    force_ssl_admin: bool = False

    # Runtime limits
    memory_limit: str = "256M"
    enforce_memory_limit: bool = False
    max_upload_bytes: int = Field(default=33554432, ge=0)  # 32MB

    # WordPress upstream
    upstream_url: str | None = None
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)

    # Security header policy
    header_policy_path: str = DEFAULT_HEADER_POLICY_PATH

    model_config = {"env_prefix": "WP_", "frozen": True}

    @field_validator("db_connection_type", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("trusted_proxies")
    @classmethod
    def _validate_trusted_proxies(cls, value: list[str]) -> list[str]:
        for entry in value:
            # Raises ValueError for anything that is not an address or network.
            ipaddress.ip_network(entry, strict=False)
        return value
