# backend/utils/cache.py
import json
import logging
import threading
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


class MemoryCacheClient:
    """In-process key/value store with per-key expiry, exposing the get/setex/delete subset of a Redis client."""

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def setex(self, key: str, ttl: int, value: str) -> None:
        with self._lock:
            self._data[key] = (value, time.monotonic() + ttl)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._data.pop(key, None) is not None:
                    removed += 1
        return removed


class JsonCache:
    """JSON (de)serializing wrapper; client errors are logged and reported as cache misses."""

    def __init__(self, client, ttl: int):
        self.client = client
        self.ttl = ttl

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self.client.setex(key, self.ttl, json.dumps(value))
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    def delete(self, *keys: str) -> None:
        try:
            self.client.delete(*keys)
        except Exception as e:
            logger.warning(f"Cache invalidation failed for {keys}: {e}")
