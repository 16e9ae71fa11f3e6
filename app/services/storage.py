"""
Durable key-value storage.

Small JSON values under string keys. Every call tries the primary backend
(Redis) first and retries the same operation against the fallback backend
(JSON files on disk) when the primary fails. Reads also go to the fallback
when the primary has no usable value, so records written during a Redis
outage stay visible after it recovers.

Keys used by the app:
    content_pack_{slug}   -> serialized ContentPack
    purchased_content     -> ordered list of owned product ids
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import redis

from app.config import get_settings
from app.errors import StorageFailure

logger = logging.getLogger(__name__)

PURCHASES_KEY = "purchased_content"


def content_pack_key(slug: str) -> str:
    """Storage key for a saved content pack."""
    return f"content_pack_{slug}"


# =============================================================================
# BACKENDS
# =============================================================================

class StorageBackend(Protocol):
    """Raw string storage. Raises StorageFailure on any failure."""

    name: str

    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, data: str) -> None: ...


class RedisBackend:
    """Primary backend: Redis with a bounded socket timeout."""

    name = "redis"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        timeout: float = 2.0,
        client: Optional[redis.Redis] = None,
        prefix: str = "kids:",
    ):
        self.redis = client if client is not None else redis.Redis(
            host=host,
            port=port,
            db=db,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def read(self, key: str) -> Optional[str]:
        try:
            return self.redis.get(self._key(key))
        except redis.RedisError as e:
            raise StorageFailure(f"redis read {key!r}: {e}") from e

    def write(self, key: str, data: str) -> None:
        try:
            self.redis.set(self._key(key), data)
        except redis.RedisError as e:
            raise StorageFailure(f"redis write {key!r}: {e}") from e


class FileBackend:
    """Fallback backend: one `<key>.json` file per key."""

    name = "file"

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageFailure(f"file read {key!r}: {e}") from e

    def write(self, key: str, data: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(data, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageFailure(f"file write {key!r}: {e}") from e


class MemoryBackend:
    """In-process dict backend."""

    name = "memory"

    def __init__(self):
        self.data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, data: str) -> None:
        self.data[key] = data


# =============================================================================
# STORE
# =============================================================================

class KeyValueStore:
    """
    Primary/fallback JSON store.

    get() reads the primary first and the fallback whenever the primary
    fails, has no value, or holds one that does not decode. It returns
    None when neither backend has a usable value.
    set() returns True when either backend accepted the write.
    """

    def __init__(self, primary: StorageBackend, fallback: StorageBackend):
        self.primary = primary
        self.fallback = fallback

    def get(self, key: str) -> Any:
        value = self._read(self.primary, key)
        if value is None:
            value = self._read(self.fallback, key)
        return value

    def get_each(self, key: str) -> List[Any]:
        """Usable values from every backend, primary first."""
        values = []
        for backend in (self.primary, self.fallback):
            value = self._read(backend, key)
            if value is not None:
                values.append(value)
        return values

    def set(self, key: str, value: Any) -> bool:
        data = json.dumps(value, ensure_ascii=False)
        try:
            self.primary.write(key, data)
            return True
        except StorageFailure as e:
            logger.warning(f"[Storage] {self.primary.name} write failed, using {self.fallback.name}: {e}")
        try:
            self.fallback.write(key, data)
            return True
        except StorageFailure as e:
            logger.warning(f"[Storage] {self.fallback.name} write failed: {e}")
            return False

    def _read(self, backend: StorageBackend, key: str) -> Any:
        try:
            raw = backend.read(key)
        except StorageFailure as e:
            logger.warning(f"[Storage] {backend.name} read failed: {e}")
            return None
        return self._decode(key, raw)

    @staticmethod
    def _decode(key: str, raw: Optional[str]) -> Any:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"[Storage] Undecodable value under {key!r}, treating as absent")
            return None


# =============================================================================
# DOMAIN HELPERS
# =============================================================================

class ContentStorage:
    """Content packs and purchase records on top of a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def save_content_pack(self, slug: str, pack: Dict[str, Any]) -> bool:
        return self.store.set(content_pack_key(slug), pack)

    def load_content_pack(self, slug: str) -> Optional[Dict[str, Any]]:
        data = self.store.get(content_pack_key(slug))
        return data if isinstance(data, dict) else None

    def save_purchases(self, purchases: List[str]) -> bool:
        return self.store.set(PURCHASES_KEY, list(purchases))

    def load_purchases(self) -> List[str]:
        """
        Owned product ids, in the order they were bought.

        Both backends are merged: a purchase recorded on either one counts.
        """
        purchases: List[str] = []
        for data in self.store.get_each(PURCHASES_KEY):
            if not isinstance(data, list):
                continue
            for item in data:
                if str(item) not in purchases:
                    purchases.append(str(item))
        return purchases

    def is_purchased(self, product_id: str) -> bool:
        return product_id in self.load_purchases()

    def add_purchase(self, product_id: str) -> bool:
        """Append a product id unless it is already recorded."""
        purchases = self.load_purchases()
        if product_id in purchases:
            return True
        purchases.append(product_id)
        logger.info(f"[Storage] Recorded purchase {product_id!r}")
        return self.save_purchases(purchases)


def build_content_storage() -> ContentStorage:
    """Redis-primary, file-fallback storage from settings."""
    settings = get_settings()
    primary = RedisBackend(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        timeout=settings.redis_timeout,
    )
    fallback = FileBackend(settings.storage_dir)
    return ContentStorage(KeyValueStore(primary, fallback))
