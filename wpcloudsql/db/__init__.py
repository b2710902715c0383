"""Database access for the health probe and startup checks."""

from wpcloudsql.db.database import Database
from wpcloudsql.db.query_stats import QueryStats, log_query_stats

__all__ = ["Database", "QueryStats", "log_query_stats"]
