"""Query counters fed by SQLAlchemy cursor events."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

_START_KEY = "wpcloudsql_query_start"


@dataclass
class QueryStats:
    """Running totals of executed statements and their wall time."""

    count: int = 0
    total_seconds: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, elapsed: float) -> None:
        with self._lock:
            self.count += 1
            self.total_seconds += elapsed

    def attach(self, engine: Engine) -> None:
        """Start recording every statement executed through ``engine``."""
        event.listen(engine, "before_cursor_execute", self._before_execute)
        event.listen(engine, "after_cursor_execute", self._after_execute)

    def _before_execute(self, conn, cursor, statement, parameters, context, executemany) -> None:  # noqa: ANN001
        conn.info.setdefault(_START_KEY, []).append(time.perf_counter())

    def _after_execute(self, conn, cursor, statement, parameters, context, executemany) -> None:  # noqa: ANN001
        starts = conn.info.get(_START_KEY)
        if starts:
            self.record(time.perf_counter() - starts.pop())


def log_query_stats(stats: QueryStats) -> None:
    """Emit the shutdown summary of database usage."""
    logger.info(
        "Total DB queries: %d",
        stats.count,
        extra={"query_count": stats.count},
    )
    logger.info(
        "Total query time: %.6f",
        stats.total_seconds,
        extra={"query_time_ms": round(stats.total_seconds * 1000, 3)},
    )
