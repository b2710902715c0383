"""SQLAlchemy engine wrapper for the Cloud SQL MySQL instance.

Provides the single-shot ``probe()`` used by the health check and a retrying
``wait_until_available()`` used while the service starts, so a Cloud SQL
proxy that comes up a little after us does not fail the first requests.
"""

from __future__ import annotations

import logging
import time

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from wpcloudsql.config.connection import ConnectionConfig
from wpcloudsql.db.query_stats import QueryStats
from wpcloudsql.middleware.error_handler import DatabaseUnavailableError, ProbeError

logger = logging.getLogger(__name__)

_PROBE_SQL = text("SELECT 1")


class Database:
    """Owns the connection pool for one resolved connection.

    Parameters
    ----------
    connection:
        Resolved connection descriptor.
    timeout:
        Driver connect timeout in seconds.
    retry_attempts:
        Attempts made by ``wait_until_available`` (at least 1).
    retry_delay:
        Seconds to sleep between attempts.
    save_queries:
        Record query count and time in ``query_stats``.
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        *,
        timeout: int = 30,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        save_queries: bool = False,
        echo: bool = False,
    ) -> None:
        self._connection = connection
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self.query_stats = QueryStats()

        self._engine: Engine = create_engine(
            connection.sqlalchemy_url(),
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=echo,
            connect_args={
                "connect_timeout": timeout,
                "init_command": f"SET NAMES {connection.charset} COLLATE {connection.collation}",
            },
        )
        if save_queries:
            self.query_stats.attach(self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def connection(self) -> ConnectionConfig:
        return self._connection

    def probe(self) -> object:
        """Run ``SELECT 1`` once and return the scalar.

        Raises
        ------
        ProbeError
            If the driver cannot connect or the query fails.
        """
        try:
            with self._engine.connect() as conn:
                return conn.execute(_PROBE_SQL).scalar()
        except SQLAlchemyError as exc:
            raise ProbeError(reason=str(exc)) from exc

    def wait_until_available(self) -> None:
        """Probe with retries.

        Raises
        ------
        DatabaseUnavailableError
            If every attempt fails.
        """
        last_exception: ProbeError | None = None

        for attempt in range(self._retry_attempts):
            try:
                self.probe()
                logger.info(
                    "Database reachable at %s (%s mode)",
                    self._connection.host,
                    self._connection.mode.value,
                )
                return
            except ProbeError as exc:
                last_exception = exc
                logger.warning(
                    "Database unreachable at %s (attempt %d/%d), retrying in %.1fs",
                    self._connection.host,
                    attempt + 1,
                    self._retry_attempts,
                    self._retry_delay,
                    extra={"error_reason": type(exc.__cause__).__name__},
                )
                if attempt < self._retry_attempts - 1:
                    time.sleep(self._retry_delay)

        logger.error(
            "Database unreachable at %s after %d attempts",
            self._connection.host,
            self._retry_attempts,
        )
        reason = last_exception.details.get("reason") if last_exception else None
        raise DatabaseUnavailableError(reason=reason) from last_exception

    def dispose(self) -> None:
        self._engine.dispose()
