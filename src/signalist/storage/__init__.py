"""Storage layer: PostgreSQL (asyncpg), Redis."""

from signalist.storage.database import Database, close_database, get_database, init_database
from signalist.storage.redis import close_redis, init_redis, publish_digest_report

__all__ = [
    "Database",
    "close_database",
    "close_redis",
    "get_database",
    "init_database",
    "init_redis",
    "publish_digest_report",
]
