"""Shared key-value state for agent status and in-flight analysis markers.

Two implementations behind one interface:
- InMemoryStateStore: process-local, for tests and single-instance deployments
- RedisStateStore: shared across instances, markers expire after a TTL
"""

import time
from abc import ABC, abstractmethod

import redis.asyncio as redis
import structlog

from tennisoracle.config import Settings

logger = structlog.get_logger(__name__)

KEY_PREFIX = "tennisoracle"


class StateStore(ABC):
    """Minimal hash + lock store used by the registry and the orchestrator."""

    @abstractmethod
    async def acquire(self, key: str, ttl: int) -> bool:
        """Set key if absent. Returns False when it is already held."""

    @abstractmethod
    async def release(self, key: str) -> None:
        """Drop a key set by acquire."""

    @abstractmethod
    async def is_held(self, key: str) -> bool:
        """Check whether a live marker exists for key."""

    @abstractmethod
    async def hash_set(self, key: str, mapping: dict[str, str]) -> None:
        """Set fields on a hash."""

    @abstractmethod
    async def hash_incr(self, key: str, field: str, amount: int = 1) -> int:
        """Atomically increment an integer hash field."""

    @abstractmethod
    async def hash_get_all(self, key: str) -> dict[str, str]:
        """Read a hash. Missing hashes read as empty."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a hash or marker."""

    async def close(self) -> None:
        return None


class InMemoryStateStore(StateStore):
    """Process-local store. Safe under a single event loop without locks."""

    def __init__(self):
        self._markers: dict[str, float] = {}
        self._hashes: dict[str, dict[str, str]] = {}

    def _expired(self, key: str) -> bool:
        expires_at = self._markers.get(key)
        if expires_at is None:
            return True
        if expires_at <= time.monotonic():
            del self._markers[key]
            return True
        return False

    async def acquire(self, key: str, ttl: int) -> bool:
        if not self._expired(key):
            return False
        self._markers[key] = time.monotonic() + ttl
        return True

    async def release(self, key: str) -> None:
        self._markers.pop(key, None)

    async def is_held(self, key: str) -> bool:
        return not self._expired(key)

    async def hash_set(self, key: str, mapping: dict[str, str]) -> None:
        self._hashes.setdefault(key, {}).update(mapping)

    async def hash_incr(self, key: str, field: str, amount: int = 1) -> int:
        fields = self._hashes.setdefault(key, {})
        value = int(fields.get(field, "0")) + amount
        fields[field] = str(value)
        return value

    async def hash_get_all(self, key: str) -> dict[str, str]:
        return dict(self._hashes.get(key, {}))

    async def delete(self, key: str) -> None:
        self._hashes.pop(key, None)
        self._markers.pop(key, None)


class RedisStateStore(StateStore):
    """
    Redis-backed store.

    Markers use SET NX EX so a crashed instance cannot hold a match forever.
    """

    def __init__(self, redis_client: redis.Redis):
        """
        Initialize the store.

        Args:
            redis_client: Redis client (bytes or decoded responses)
        """
        self.redis = redis_client

    @staticmethod
    def _decode(value) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def acquire(self, key: str, ttl: int) -> bool:
        acquired = await self.redis.set(key, "1", nx=True, ex=ttl)
        return bool(acquired)

    async def release(self, key: str) -> None:
        await self.redis.delete(key)

    async def is_held(self, key: str) -> bool:
        return bool(await self.redis.exists(key))

    async def hash_set(self, key: str, mapping: dict[str, str]) -> None:
        await self.redis.hset(key, mapping=mapping)

    async def hash_incr(self, key: str, field: str, amount: int = 1) -> int:
        return int(await self.redis.hincrby(key, field, amount))

    async def hash_get_all(self, key: str) -> dict[str, str]:
        raw = await self.redis.hgetall(key)
        return {self._decode(k): self._decode(v) for k, v in raw.items()}

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def close(self) -> None:
        await self.redis.aclose()


def build_state_store(settings: Settings) -> StateStore:
    """Create the store selected by settings.state_backend."""
    if settings.state_backend == "redis":
        logger.info("state_store_selected", backend="redis")
        return RedisStateStore(redis.from_url(settings.redis_url))
    if settings.state_backend != "memory":
        raise ValueError(f"Unknown state backend: {settings.state_backend}")
    logger.info("state_store_selected", backend="memory")
    return InMemoryStateStore()


def analysis_lock_key(match_id: int) -> str:
    return f"{KEY_PREFIX}:analysis:{match_id}"


def agent_status_key(agent_name: str) -> str:
    return f"{KEY_PREFIX}:agent:{agent_name}"
