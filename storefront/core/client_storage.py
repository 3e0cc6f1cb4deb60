"""Per-visitor key/value storage in Redis with in-memory fallback.

Each visitor owns one Redis hash ``client_storage:<visitor_id>``; the hash
fields are the well-known keys used by the rest of the storefront
(``shopping-cart``, ``pendingPayment``, ``auth_token``).
"""
from __future__ import annotations

import logging
from typing import Any

import redis

from storefront.core.config import DEFAULT_STORAGE_QUOTA_BYTES
from storefront.core.exceptions import StorageException, StorageQuotaExceededException

logger = logging.getLogger(__name__)


class ClientStorage:
    """Visitor storage persisted in Redis, falling back to process memory."""

    def __init__(
        self,
        redis_url: str | None = None,
        quota_bytes: int = DEFAULT_STORAGE_QUOTA_BYTES,
    ):
        self._redis_url = redis_url
        self._quota_bytes = quota_bytes
        self._client = self._init_client()
        self._memory: dict[str, dict[str, str]] = {}

    def _init_client(self) -> Any:
        if not self._redis_url:
            logger.warning("REDIS_URL is not set; visitor storage uses in-memory fallback")
            return None

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
            logger.info("Redis visitor storage enabled")
            return client
        except Exception as exc:
            logger.warning("Redis visitor storage init failed, fallback to in-memory: %s", exc)
            return None

    def _switch_to_memory_fallback(self, reason: Exception | str) -> None:
        logger.warning("Redis visitor storage fallback to memory mode: %s", reason)
        self._client = None

    @property
    def uses_redis(self) -> bool:
        return self._client is not None

    @staticmethod
    def _hash_key(visitor_id: str) -> str:
        return f"client_storage:{visitor_id}"

    def get(self, visitor_id: str, key: str) -> str | None:
        if self._client:
            try:
                return self._client.hget(self._hash_key(visitor_id), key)
            except redis.RedisError as exc:
                self._switch_to_memory_fallback(exc)
        return self._memory.get(visitor_id, {}).get(key)

    def set(self, visitor_id: str, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if size > self._quota_bytes:
            raise StorageQuotaExceededException(key, size, self._quota_bytes)

        if self._client:
            try:
                self._client.hset(self._hash_key(visitor_id), key, value)
                return
            except redis.RedisError as exc:
                self._switch_to_memory_fallback(exc)
        self._memory.setdefault(visitor_id, {})[key] = value

    def delete(self, visitor_id: str, key: str) -> None:
        if self._client:
            try:
                self._client.hdel(self._hash_key(visitor_id), key)
                return
            except redis.RedisError as exc:
                self._switch_to_memory_fallback(exc)
        bucket = self._memory.get(visitor_id)
        if bucket is None:
            return
        bucket.pop(key, None)
        if not bucket:
            self._memory.pop(visitor_id, None)

    def keys(self, visitor_id: str) -> list[str]:
        if self._client:
            try:
                return list(self._client.hkeys(self._hash_key(visitor_id)))
            except redis.RedisError as exc:
                self._switch_to_memory_fallback(exc)
        return list(self._memory.get(visitor_id, {}))

    def for_visitor(self, visitor_id: str) -> VisitorStorage:
        return VisitorStorage(self, visitor_id)


class VisitorStorage:
    """One visitor's slice of :class:`ClientStorage`.

    Mirrors the browser storage calls (``get_item``/``set_item``/``remove_item``).
    Any backend fault surfaces as :class:`StorageException`.
    """

    def __init__(self, backend: ClientStorage, visitor_id: str):
        self._backend = backend
        self.visitor_id = visitor_id

    def get_item(self, key: str) -> str | None:
        try:
            return self._backend.get(self.visitor_id, key)
        except StorageException:
            raise
        except Exception as exc:
            raise StorageException(f"Failed to read '{key}': {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            self._backend.set(self.visitor_id, key, value)
        except StorageException:
            raise
        except Exception as exc:
            raise StorageException(f"Failed to write '{key}': {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self._backend.delete(self.visitor_id, key)
        except StorageException:
            raise
        except Exception as exc:
            raise StorageException(f"Failed to remove '{key}': {exc}") from exc

    def keys(self) -> list[str]:
        return self._backend.keys(self.visitor_id)
