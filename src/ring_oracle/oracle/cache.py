"""In-process TTL cache for quotes. Entries are chain-scoped and evicted lazily on read."""

import time
from collections.abc import Callable

from ring_oracle.logging_config import get_logger
from ring_oracle.models import CacheEntry, CacheStats, CacheStatsEntry, PriceQuote

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class PriceCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, key: str, chain_id: int | None = None) -> PriceQuote | None:
        """Quote under key written for chain_id; None if absent, expired or for another chain."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._now_ms() > entry.expires_at:
            del self._store[key]
            logger.debug("price_cache_expired", key=key, chain_id=entry.chain_id)
            return None
        if entry.chain_id != chain_id:
            return None
        return entry.data

    def set(self, key: str, quote: PriceQuote, chain_id: int | None = None) -> None:
        self._store[key] = CacheEntry(
            data=quote,
            expires_at=self._now_ms() + int(self.ttl_seconds * 1000),
            chain_id=chain_id,
        )

    def clear(self) -> None:
        self._store.clear()
        logger.info("price_cache_cleared")

    def __contains__(self, key: object) -> bool:
        """Raw membership, ignoring expiry (for inspection)."""
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._store),
            entries=[
                CacheStatsEntry(
                    key=key,
                    chain_id=entry.chain_id,
                    expires_at=entry.expires_at,
                    source=entry.data.source,
                )
                for key, entry in self._store.items()
            ],
        )
