"""Redis client creation helpers used by application startup."""

from __future__ import annotations

from redis.asyncio import Redis

from arcade_scores.config import DEFAULT_REDIS_URL


def create_redis_client(redis_url: str | None = None) -> Redis:
    return Redis.from_url(redis_url or DEFAULT_REDIS_URL, decode_responses=True)
