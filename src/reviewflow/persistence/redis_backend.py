"""Redis-backed cache for serialized workflow definitions."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import redis

from reviewflow.core.config import RedisConfig
from reviewflow.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class RedisCacheBackend:
    """ICacheBackend over a Redis client.

    Keys are namespaced with ``key_prefix`` so several deployments can share
    one Redis database. Every Redis failure surfaces as ``CacheError``;
    callers treat the cache as optional and fall back to the table.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        *,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "reviewflow:",
        socket_timeout: Optional[float] = None,
    ) -> None:
        if client is None:
            client = redis.Redis(
                host=host, port=port, db=db, decode_responses=True, socket_timeout=socket_timeout,
            )
        self._client = client
        self._prefix = key_prefix

    @classmethod
    def from_config(cls, config: RedisConfig) -> "RedisCacheBackend":
        return cls(
            host=config.host,
            port=config.port,
            db=config.db,
            key_prefix=config.key_prefix,
            socket_timeout=config.socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _call(self, op: str, key: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(self._key(key), *args)
        except redis.RedisError as exc:
            logger.warning("cache_op_failed", extra={"op": op, "key": key})
            raise CacheError(f"Redis {op} failed for key={key!r}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        value = self._call("GET", key, self._client.get)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._call("SETEX", key, self._client.setex, ttl, value)

    def delete(self, key: str) -> None:
        self._call("DEL", key, self._client.delete)
