"""TTL cache in front of gateway order ownership lookups.

Only orders confirmed to carry this application's tag are remembered. A
foreign or failed lookup always goes back to the gateway, so a cached
entry can never make the service accept a payment it would otherwise
ignore. A TTL of zero disables caching entirely.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class OwnershipCacheConfig:
    max_size: int = 1000
    ttl_seconds: int = 0
    sweep_interval_seconds: int = 300

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    @classmethod
    def from_settings(cls) -> "OwnershipCacheConfig":
        from src.core.config import get_settings

        settings = get_settings()
        return cls(max_size=settings.ownership_cache_size, ttl_seconds=settings.ownership_cache_ttl_seconds)


class OwnershipCache:
    """Least-recently-used map of order id to (owner tag, expiry)."""

    def __init__(self, config: OwnershipCacheConfig | None = None) -> None:
        self.config = config or OwnershipCacheConfig()
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._lock = Lock()
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, order_id: str) -> str | None:
        """Return the owner tag if the order was confirmed within the TTL."""
        if not self.config.enabled:
            return None

        with self._lock:
            entry = self._entries.get(order_id)
            if entry is None:
                return None
            tag, expires_at = entry
            if time.time() > expires_at:
                del self._entries[order_id]
                return None
            self._entries.move_to_end(order_id)
            return tag

    def remember_owned(self, order_id: str, application_tag: str) -> None:
        if not self.config.enabled:
            return

        with self._lock:
            self._entries[order_id] = (application_tag, time.time() + self.config.ttl_seconds)
            self._entries.move_to_end(order_id)
            while len(self._entries) > self.config.max_size:
                self._entries.popitem(last=False)

    def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.time()
        with self._lock:
            stale = [order_id for order_id, (_, expires_at) in self._entries.items() if now > expires_at]
            for order_id in stale:
                del self._entries[order_id]
        return len(stale)

    async def _sweep_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Swept %d expired ownership entries", removed)

    async def start(self) -> None:
        """Start the background sweeper when caching is enabled."""
        if self.config.enabled and self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_periodically())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None


_ownership_cache: OwnershipCache | None = None


def get_ownership_cache() -> OwnershipCache:
    """Process-wide cache built from settings on first use."""
    global _ownership_cache
    if _ownership_cache is None:
        _ownership_cache = OwnershipCache(OwnershipCacheConfig.from_settings())
    return _ownership_cache


async def init_ownership_cache() -> OwnershipCache:
    cache = get_ownership_cache()
    await cache.start()
    return cache


async def shutdown_ownership_cache() -> None:
    if _ownership_cache is not None:
        await _ownership_cache.stop()
