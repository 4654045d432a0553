"""
Best-effort Redis cache for roster lookups.

- Optional: with no REDIS_URL, or Redis unreachable, every read goes straight to Mongo.
- Coalescing: concurrent misses for one key share a single loader call.
- Invalidation: link changes bump a per-patient version that is part of every key.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import redis.asyncio as redis
import structlog
from pydantic import TypeAdapter

from app.core.config import settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_redis_client: redis.Redis | None = None
_inflight: dict[str, asyncio.Task[Any]] = {}
_inflight_lock = asyncio.Lock()


async def init_cache() -> redis.Redis | None:
    """Create the shared Redis client, or return None when caching is off."""
    global _redis_client

    if not settings.REDIS_URL:
        return None

    client = redis.from_url(settings.REDIS_URL, decode_responses=False)
    try:
        await client.ping()
    except Exception as exc:  # pragma: no cover - best-effort init
        logger.warning("cache_ping_failed", error=str(exc))
        return None

    _redis_client = client
    return client


async def close_cache() -> None:
    global _redis_client

    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def roster_version_key(patient_id: str) -> str:
    return f"roster:version:{patient_id}"


async def bump_roster_version(patient_id: str) -> None:
    """Make every cached roster entry for the patient stale."""
    client = _redis_client
    if client is None:
        return
    try:
        await client.incr(roster_version_key(patient_id))
    except Exception as exc:  # pragma: no cover - cache is best-effort
        logger.warning("cache_invalidate_failed", patient_id=patient_id, error=str(exc))


async def get_roster_version(patient_id: str) -> int:
    client = _redis_client
    if client is None:
        return 0
    try:
        raw = await client.get(roster_version_key(patient_id))
    except Exception as exc:  # pragma: no cover - cache is best-effort
        logger.warning("cache_version_read_failed", patient_id=patient_id, error=str(exc))
        return 0
    return int(raw) if raw is not None else 0


async def cached_json(
    key: str,
    loader: Callable[[], Awaitable[T]],
    adapter: TypeAdapter[T],
    ttl_seconds: int | None = None,
) -> T:
    """
    Return the cached value for `key`, or run `loader` once and store its result.

    Cache failures never fail the caller; loader errors always propagate.
    """
    client = _redis_client
    if client is None:
        return await loader()

    cached = await _read(client, key, adapter)
    if cached is not None:
        return cached

    async with _inflight_lock:
        task = _inflight.get(key)
        if task is None:
            task = asyncio.create_task(_load_and_store(client, key, loader, adapter, ttl_seconds))
            _inflight[key] = task

    try:
        return await task
    finally:
        async with _inflight_lock:
            _inflight.pop(key, None)


async def _read(client: redis.Redis, key: str, adapter: TypeAdapter[T]) -> T | None:
    try:
        raw = await client.get(key)
    except Exception as exc:  # pragma: no cover - cache is best-effort
        logger.warning("cache_read_failed", key=key, error=str(exc))
        return None

    if raw is None:
        return None

    try:
        return adapter.validate_json(raw)
    except Exception as exc:
        logger.warning("cache_deserialize_failed", key=key, error=str(exc))
        try:
            await client.delete(key)
        except Exception:  # pragma: no cover - cache is best-effort
            pass
        return None


async def _load_and_store(
    client: redis.Redis,
    key: str,
    loader: Callable[[], Awaitable[T]],
    adapter: TypeAdapter[T],
    ttl_seconds: int | None,
) -> T:
    result = await loader()
    try:
        await client.set(
            key,
            adapter.dump_json(result),
            ex=ttl_seconds or settings.ROSTER_CACHE_TTL_SECONDS,
        )
    except Exception as exc:  # pragma: no cover - cache is best-effort
        logger.warning("cache_write_failed", key=key, error=str(exc))
    return result
