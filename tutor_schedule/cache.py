from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, NamedTuple

from tutor_schedule.config import settings
from tutor_schedule.core.time_provider import default_time_provider
from tutor_schedule.metrics import record_cache_event


logger = logging.getLogger(__name__)


def cache_key(prefix: str, identifier: str | int | None = None) -> str:
    if identifier is None or identifier == '':
        return prefix
    return f"{prefix}:{identifier}"


class _Entry(NamedTuple):
    expires_at: datetime
    value: Any


class CacheBackend:
    def get(self, key: str) -> Any | None:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int) -> None:
        raise NotImplementedError

    def delete_prefix(self, prefix: str) -> int:
        raise NotImplementedError


class MemoryCacheBackend(CacheBackend):
    """Per-process store; each gunicorn worker keeps its own copy."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or default_time_provider.now
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        entry = _Entry(self._clock() + timedelta(seconds=max(1, int(ttl))), value)
        with self._lock:
            self._entries[key] = entry

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key == prefix or key.startswith(f'{prefix}:')]
            for key in doomed:
                del self._entries[key]
        return len(doomed)


@dataclass
class CacheManager:
    backend: CacheBackend

    def get_cached(self, key: str) -> Any | None:
        value = self.backend.get(key)
        record_cache_event('cache_hit' if value is not None else 'cache_miss')
        return value

    def set_cached(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.backend.set(key, value, ttl if ttl is not None else settings.default_cache_ttl)

    def get_or_load(
        self,
        key: str,
        loader: Callable[[], Any],
        *,
        ttl: int | None = None,
        cacheable: Callable[[Any], bool] = lambda value: value is not None,
    ) -> Any:
        """Return the cached value or call ``loader``; store only what ``cacheable`` accepts."""
        cached = self.get_cached(key)
        if cached is not None:
            return cached
        value = loader()
        if cacheable(value):
            self.set_cached(key, value, ttl)
        return value

    def invalidate_prefix(self, prefix: str) -> None:
        removed = self.backend.delete_prefix(prefix)
        record_cache_event('cache_invalidate')
        logger.debug('cache_invalidate prefix=%s removed=%s', prefix, removed)


cache = CacheManager(backend=MemoryCacheBackend())
