"""Configuration module — settings, connection resolution and header policy."""

from wpcloudsql.config.connection import ConnectionConfig, resolve_connection
from wpcloudsql.config.header_policy import HeaderPolicy, load_header_policy
from wpcloudsql.config.settings import ConnectionMode, GatewaySettings

__all__ = [
    "ConnectionConfig",
    "ConnectionMode",
    "GatewaySettings",
    "HeaderPolicy",
    "load_header_policy",
    "resolve_connection",
]
