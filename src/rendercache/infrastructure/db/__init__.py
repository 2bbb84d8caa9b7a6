from .pool import ConnectionPool
from .retry import ConnectionRetryPolicy
from .schema import init_schema

__all__ = ["ConnectionPool", "ConnectionRetryPolicy", "init_schema"]
