"""Disk cache for metadata-provider responses."""

from __future__ import annotations

import hashlib
import json
import time
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger("animap.metadata.cache")


class ResponseCache:
    """JSON file cache keyed by provider and request, with a TTL.

    A TTL of 0 disables caching entirely.
    """

    def __init__(self, cache_dir: Path, ttl: int = 3600) -> None:
        """Initialize response cache.

        Args:
            cache_dir: Directory for cache files
            ttl: Time-to-live in seconds (0 = disabled)
        """
        self.cache_dir = cache_dir
        self.ttl = ttl
        if self.enabled:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def _get_cache_key(self, prefix: str, request: dict[str, Any]) -> str:
        key_str = f"{prefix}:{json.dumps(request, sort_keys=True, default=str)}"
        return hashlib.sha256(key_str.encode()).hexdigest()

    def _get_cache_path(self, prefix: str, request: dict[str, Any]) -> Path:
        return self.cache_dir / f"{self._get_cache_key(prefix, request)}.json"

    async def get(self, prefix: str, request: dict[str, Any]) -> Any | None:
        """Get a cached payload.

        Args:
            prefix: Provider name
            request: Request description (endpoint, params, variables)

        Returns:
            Cached payload or None if not found/expired
        """
        if not self.enabled:
            return None

        cache_path = self._get_cache_path(prefix, request)
        if not cache_path.exists():
            return None

        try:
            if time.time() - cache_path.stat().st_mtime > self.ttl:
                cache_path.unlink()
                return None

            with cache_path.open("r") as f:
                data = json.load(f)
            logger.debug("Metadata cache hit", provider=prefix)
            return data.get("payload")
        except (OSError, ValueError) as e:
            logger.warning("Failed to read metadata cache", provider=prefix, error=str(e))
            return None

    async def store(self, prefix: str, request: dict[str, Any], payload: Any) -> None:
        """Store a payload in the cache."""
        if not self.enabled:
            return

        cache_path = self._get_cache_path(prefix, request)
        try:
            with cache_path.open("w") as f:
                json.dump({"payload": payload, "timestamp": time.time()}, f)
            logger.debug("Cached metadata response", provider=prefix)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to write metadata cache", provider=prefix, error=str(e))
