"""Redis connection and digest report publishing.

Redis carries only transient traffic (digest run reports and the readiness
ping); durable state lives in PostgreSQL.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from redis.asyncio import Redis

from signalist.core.constants import DIGEST_REPORT_CHANNEL
from signalist.core.logging import get_logger

if TYPE_CHECKING:
    from signalist.processing.digest.models import DigestReport

logger = get_logger(__name__)

_redis: Redis | None = None


async def init_redis(redis_url: str) -> Redis:
    """Connect to Redis; the client is dropped again if the ping fails."""
    global _redis
    client = Redis.from_url(redis_url, decode_responses=False)
    try:
        await client.ping()  # type: ignore[misc]
    except Exception:
        await client.aclose()
        raise
    _redis = client
    logger.info("Redis connected")
    return client


async def close_redis() -> None:
    global _redis
    if _redis is None:
        return
    await _redis.aclose()
    _redis = None
    logger.info("Redis disconnected")


async def publish_digest_report(redis: Redis, report: DigestReport) -> int:
    """Publish a finished run's report; returns the number of subscribers reached."""
    receivers = await redis.publish(DIGEST_REPORT_CHANNEL, report.model_dump_json())
    logger.debug("Digest report published", run_id=report.run_id, receivers=receivers)
    return int(receivers)
