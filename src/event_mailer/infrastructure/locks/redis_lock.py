from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from redis.exceptions import LockError

from event_mailer.application.exceptions import ConflictError

logger = logging.getLogger(__name__)


class RedisRunLock:
    """Non-blocking Redis lock; a second holder gets ``ConflictError``."""

    def __init__(self, redis: aioredis.Redis, name: str, ttl: float) -> None:
        self._redis = redis
        self._name = name
        self._ttl = ttl

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        lock = self._redis.lock(self._name, timeout=self._ttl, blocking=False)
        if not await lock.acquire():
            raise ConflictError("Queue processing is already running")
        logger.debug("Acquired lock %s", self._name)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # TTL expired mid-run; another holder may own the key now.
                logger.warning("Lock %s expired before release", self._name)
