"""HTTP routers."""

from wpcloudsql.routers.upstream import create_upstream_router

__all__ = ["create_upstream_router"]
