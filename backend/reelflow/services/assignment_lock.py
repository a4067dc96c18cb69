"""
Redis-based distributed lock serializing auto-assignment per role.

Two auto-assign requests for the same role must not both read the same
"least loaded" person before either writes. The lock is a Redis sorted
set semaphore with limit 1:
- key: assign-lock:{role}
- members: unique tokens (UUIDs)
- scores: expiry timestamps (unix epoch)

Expired tokens are cleaned up on every acquire attempt, so a crashed
holder cannot block the role for longer than the TTL.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

from reelflow.settings import get_settings

logger = logging.getLogger(__name__)

_redis_client: aioredis.Redis | None = None


def _get_redis() -> aioredis.Redis:
    """Get or create a shared async Redis client."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
    return _redis_client


def _lock_key(name: str) -> str:
    return f"assign-lock:{name}"


async def acquire(
    name: str,
    *,
    ttl_sec: int | None = None,
    wait_timeout_sec: int | None = None,
) -> str:
    """Acquire the lock for `name`.

    Returns:
        token string (must be passed to release())

    Raises:
        TimeoutError: if wait_timeout_sec exceeded
    """
    settings = get_settings()
    if ttl_sec is None:
        ttl_sec = settings.assignment_lock_ttl_sec
    if wait_timeout_sec is None:
        wait_timeout_sec = settings.assignment_lock_wait_sec

    r = _get_redis()
    key = _lock_key(name)
    token = str(uuid.uuid4())
    deadline = time.monotonic() + wait_timeout_sec
    backoff = 0.05

    while True:
        now_ts = time.time()
        await r.zremrangebyscore(key, "-inf", now_ts)

        if await r.zcard(key) < 1:
            added = await r.zadd(key, {token: now_ts + ttl_sec}, nx=True)
            if added:
                # Another holder may have slipped in between zcard and zadd
                if await r.zcard(key) > 1:
                    await r.zrem(key, token)
                else:
                    logger.debug(f"[assign-lock] Acquired '{name}' (token={token[:8]}…)")
                    return token

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError(f"Assignment lock '{name}': timed out after {wait_timeout_sec}s")

        await asyncio.sleep(min(backoff, remaining))
        backoff = min(backoff * 1.5, 1.0)


async def release(name: str, token: str) -> None:
    r = _get_redis()
    removed = await r.zrem(_lock_key(name), token)
    if removed:
        logger.debug(f"[assign-lock] Released '{name}' (token={token[:8]}…)")
    else:
        logger.warning(
            f"[assign-lock] Release '{name}': token {token[:8]}… not found "
            f"(already expired or released)"
        )


@asynccontextmanager
async def hold(names: list[str]) -> AsyncIterator[None]:
    """Hold the locks for every name (sorted, to avoid lock-order deadlocks).

    A no-op when ASSIGNMENT_LOCK_ENABLED=false.
    """
    if not get_settings().assignment_lock_enabled or not names:
        yield
        return

    held: list[tuple[str, str]] = []
    try:
        for name in sorted(set(names)):
            held.append((name, await acquire(name)))
        yield
    finally:
        for name, token in reversed(held):
            await release(name, token)
