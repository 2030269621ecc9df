"""
Simple in-memory caching for fetched repository artifacts.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

# Returned by get() when nothing is cached, so a cached None ("file absent") stays distinguishable
MISSING = object()


@dataclass
class CacheEntry:
    """A single cache entry with expiration."""
    value: Any
    expires_at: datetime


class ArtifactCache:
    """
    In-memory cache for artifact contents and tree listings.

    Keys are typically ``"owner/repo@ref:path"``. Absent files are cached as
    None so repeated runs do not refetch known 404s.
    """

    def __init__(self, default_ttl_seconds: int = 300):
        """
        Initialize the cache.

        Args:
            default_ttl_seconds: Default time-to-live in seconds (default: 5 minutes)
        """
        self._cache: Dict[str, CacheEntry] = {}
        self.default_ttl = default_ttl_seconds

    def get(self, key: str) -> Any:
        """
        Get a value from the cache.

        Returns:
            The cached value (possibly None), or MISSING if not found or expired
        """
        entry = self._cache.get(key)
        if entry is None:
            return MISSING
        if datetime.now() > entry.expires_at:
            del self._cache[key]
            return MISSING
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        self._cache[key] = CacheEntry(value=value, expires_at=datetime.now() + timedelta(seconds=ttl))

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


# Global cache instance
_global_cache = ArtifactCache()


def get_cache() -> ArtifactCache:
    """Get the global cache instance."""
    return _global_cache
