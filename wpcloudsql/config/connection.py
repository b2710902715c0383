"""Database connection resolution for Cloud SQL.

Two connection modes are supported:

- ``proxy`` — the Cloud SQL Auth Proxy sidecar listens on loopback, so the
  host is always ``127.0.0.1:3306``.
- ``private`` — the instance is reached directly on its private IP, which the
  operator supplies via ``WP_DB_PRIVATE_HOST``.

The resolver only builds the record. It never opens a connection.
"""

from __future__ import annotations

from pydantic import BaseModel, SecretStr
from sqlalchemy.engine import URL

from wpcloudsql.config.settings import PRIVATE_HOST_PLACEHOLDER, ConnectionMode, GatewaySettings
from wpcloudsql.middleware.error_handler import ConfigurationError
from wpcloudsql.validators.address import is_private_address

PROXY_ADDRESS = "127.0.0.1"
PROXY_PORT = 3306


class ConnectionConfig(BaseModel):
    """Immutable connection descriptor handed to the database layer."""

    mode: ConnectionMode
    host: str  # "address:port"
    port: int
    database_name: str
    user: str
    password: SecretStr
    charset: str
    collation: str

    model_config = {"frozen": True}

    @property
    def address(self) -> str:
        return self.host.rsplit(":", 1)[0]

    def sqlalchemy_url(self) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.address.strip("[]"),
            port=self.port,
            database=self.database_name,
            query={"charset": self.charset},
        )


def _coerce_mode(mode: ConnectionMode | str) -> ConnectionMode:
    if isinstance(mode, ConnectionMode):
        return mode
    try:
        return ConnectionMode(str(mode).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown database connection type {mode!r} (expected 'proxy' or 'private')",
            mode=str(mode),
        ) from None


def _format_host(address: str, port: int) -> str:
    if ":" in address and not address.startswith("["):
        address = f"[{address}]"  # IPv6 literal
    return f"{address}:{port}"


def resolve_connection(mode: ConnectionMode | str, settings: GatewaySettings) -> ConnectionConfig:
    """Build the connection descriptor for ``mode``.

    Raises
    ------
    ConfigurationError
        If ``mode`` is not ``proxy``/``private``, or if private mode is selected
        while the host is still the template placeholder or not a private IP.
    """
    mode = _coerce_mode(mode)

    if mode is ConnectionMode.PROXY:
        host = _format_host(PROXY_ADDRESS, PROXY_PORT)
        port = PROXY_PORT
    else:
        address = settings.db_private_host.strip()
        if not address or address == PRIVATE_HOST_PLACEHOLDER:
            raise ConfigurationError(
                "WP_DB_PRIVATE_HOST must be set to the Cloud SQL private IP "
                "when WP_DB_CONNECTION_TYPE=private",
                field="db_private_host",
            )
        if not is_private_address(address):
            raise ConfigurationError(
                f"WP_DB_PRIVATE_HOST {address!r} is not a private IP address",
                field="db_private_host",
            )
        host = _format_host(address.strip("[]"), settings.db_port)
        port = settings.db_port

    return ConnectionConfig(
        mode=mode,
        host=host,
        port=port,
        database_name=settings.db_name,
        user=settings.db_user,
        password=settings.db_password,
        charset=settings.db_charset,
        collation=settings.db_collate,
    )
