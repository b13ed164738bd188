"""Key/value storage collaborator.

Values are wrapped in an envelope ``{"value", "timestamp", "expires_in"}`` and
serialised to JSON, optionally Fernet-encrypted. Reads are forgiving: a missing,
expired, undecryptable or malformed payload is a cache miss (``None``), never
an exception. Writes raise ``StorageError`` only when the value itself cannot
be serialised; a backend that fails to write (backends raise ``StorageError``)
degrades to ``set`` returning False.

Two backends: an in-process dict (default, used by tests and single-user
sessions) and Redis via the shared pool in ``peergos.db.redis_client``.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Protocol, TypeVar

import redis
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from peergos import metrics
from peergos.core.config import settings
from peergos.core.encryption import decrypt_payload, encrypt_payload
from peergos.core.exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageBackend(Protocol):
    def get_raw(self, key: str) -> str | None: ...

    def set_raw(self, key: str, data: str, ttl_seconds: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryBackend:
    """Process-local backend. Expiry is enforced by the envelope, not here."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_raw(self, key: str) -> str | None:
        return self._data.get(key)

    def set_raw(self, key: str, data: str, ttl_seconds: float | None = None) -> None:
        self._data[key] = data

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class RedisBackend:
    """Redis backend; keys are namespaced so ``clear`` never touches foreign data."""

    def __init__(self, client: redis.Redis, prefix: str = "peergos:") -> None:
        self.client = client
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_raw(self, key: str) -> str | None:
        try:
            return self.client.get(self._k(key))
        except redis.RedisError:
            logger.warning("Redis read failed for key=%s; treating as miss", key)
            return None

    def set_raw(self, key: str, data: str, ttl_seconds: float | None = None) -> None:
        try:
            if ttl_seconds:
                # Redis TTL is a backstop; the envelope check in SecureStorage.get is authoritative
                self.client.set(self._k(key), data, px=max(1, int(ttl_seconds * 1000)))
            else:
                self.client.set(self._k(key), data)
        except redis.RedisError as e:
            raise StorageError(key, str(e)) from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._k(key))
        except redis.RedisError:
            logger.warning("Redis delete failed for key=%s", key)

    def clear(self) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError:
            logger.warning("Redis clear failed for prefix=%s", self.prefix)


class SecureStorage:
    def __init__(self, backend: StorageBackend | None = None, clock: Callable[[], float] = time.time):
        self.backend = backend if backend is not None else MemoryBackend()
        self._clock = clock

    def set(
        self,
        key: str,
        value: Any,
        *,
        encrypted: bool = False,
        expires_in_seconds: float | None = None,
    ) -> bool:
        """Store ``value`` under ``key``.

        Args:
            value: Anything pydantic can turn into JSON (models, dates, lists, dicts).
            encrypted: Encrypt the serialised envelope with the configured Fernet key.
            expires_in_seconds: Lifetime; ``get`` reports the key absent afterwards.

        Returns:
            False when the backend rejected the write. The caller keeps working
            on its in-memory copy; the failure is logged and counted.

        Raises:
            StorageError: ``value`` cannot be serialised.
        """
        try:
            envelope = {
                "value": to_jsonable_python(value),
                "timestamp": self._clock(),
                "expires_in": expires_in_seconds,
            }
            data = json.dumps(envelope, separators=(",", ":"))
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise StorageError(key, f"value is not serialisable: {e}") from e

        if encrypted:
            data = encrypt_payload(data)
        try:
            self.backend.set_raw(key, data, expires_in_seconds)
        except StorageError as e:
            logger.error("Storage write failed for key=%s; continuing without persistence: %s", key, e.message)
            metrics.storage_write_failed(type(self.backend).__name__)
            return False
        return True

    def get(self, key: str, *, encrypted: bool = False) -> Any | None:
        stored = self.backend.get_raw(key)
        if not stored:
            return None

        payload = decrypt_payload(stored) if encrypted else stored
        if payload is None:
            return None
        try:
            envelope = json.loads(payload)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Malformed payload for key=%s; treating as miss", key)
            return None
        if not isinstance(envelope, dict) or "value" not in envelope:
            logger.debug("Unexpected envelope for key=%s; treating as miss", key)
            return None

        expires_in = envelope.get("expires_in")
        timestamp = envelope.get("timestamp")
        if expires_in and isinstance(timestamp, (int, float)):
            if self._clock() - timestamp > expires_in:
                self.remove(key)
                return None

        return envelope["value"]

    def get_as(self, key: str, type_: type[T] | Any, *, encrypted: bool = False) -> T | None:
        """``get`` followed by pydantic validation; a schema mismatch is also a miss."""
        raw = self.get(key, encrypted=encrypted)
        if raw is None:
            return None
        try:
            return TypeAdapter(type_).validate_python(raw)
        except ValidationError:
            logger.debug("Stored value for key=%s failed validation; treating as miss", key)
            return None

    def remove(self, key: str) -> None:
        self.backend.delete(key)

    def clear(self) -> None:
        self.backend.clear()


def get_storage() -> SecureStorage:
    """Build a storage instance for the configured backend."""
    if settings.STORAGE_BACKEND == "redis":
        from peergos.db.redis_client import get_redis_client

        return SecureStorage(RedisBackend(get_redis_client(), settings.STORAGE_KEY_PREFIX))
    return SecureStorage(MemoryBackend())
