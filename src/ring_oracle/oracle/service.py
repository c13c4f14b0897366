"""Token/USD price service: cache in front of the resolver, default quote when every source fails."""

import time
from collections.abc import Callable
from datetime import datetime

from ring_oracle.config import Settings
from ring_oracle.logging_config import get_logger
from ring_oracle.models import (
    CONFIDENCE_DEFAULT,
    CacheStats,
    PriceQuote,
    PriceSource,
    Resolution,
)
from ring_oracle.oracle.cache import PriceCache
from ring_oracle.oracle.resolver import PriceResolver
from ring_oracle.sources.coingecko import HISTORY_BUCKET_MS, CoinGeckoProvider

logger = get_logger(__name__)


class PriceOracleService:
    def __init__(
        self,
        settings: Settings,
        resolver: PriceResolver,
        cache: PriceCache,
        history_provider: CoinGeckoProvider | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.resolver = resolver
        self.cache = cache
        self.history_provider = history_provider
        self._clock = clock

    @property
    def token_symbol(self) -> str:
        return self.settings.token_symbol.upper()

    def cache_key(self, chain_id: int | None = None) -> str:
        """RING_USD for the default request, RING_USD@<chain_id> when a chain is pinned."""
        key = f"{self.token_symbol}_USD"
        return key if chain_id is None else f"{key}@{chain_id}"

    def default_quote(self) -> PriceQuote:
        return PriceQuote(
            price=self.settings.default_price,
            timestamp=int(self._clock() * 1000),
            source=PriceSource.DEFAULT,
            confidence=CONFIDENCE_DEFAULT,
        )

    async def get_price_with_trace(
        self,
        chain_id: int | None = None,
        allow_default: bool = True,
    ) -> Resolution:
        """
        Cached quote, else resolve. With allow_default the quote is never None: total
        failure yields the default quote. Only quotes above cache_min_confidence are cached.
        """
        key = self.cache_key(chain_id)
        if self.settings.price_cache_enabled:
            cached = self.cache.get(key, chain_id)
            if cached is not None:
                logger.info(
                    "price_cache_hit",
                    key=key,
                    price=cached.price,
                    source=cached.source.value,
                )
                return Resolution(quote=cached, cached=True)

        resolution = await self.resolver.resolve_with_trace(chain_id)
        if resolution.quote is None:
            if not allow_default:
                return resolution
            logger.error(
                "price_default_used",
                chain_id=chain_id,
                price=self.settings.default_price,
            )
            resolution.quote = self.default_quote()

        quote = resolution.quote
        if self.settings.price_cache_enabled and quote.confidence > self.settings.cache_min_confidence:
            self.cache.set(key, quote, chain_id)
        return resolution

    async def get_price(
        self,
        chain_id: int | None = None,
        allow_default: bool = True,
    ) -> PriceQuote | None:
        return (await self.get_price_with_trace(chain_id, allow_default)).quote

    async def get_ring_usd_price(self) -> PriceQuote:
        """Default-chain token price. Never raises for source failures."""
        quote = await self.get_price()
        return quote if quote is not None else self.default_quote()

    async def get_historical_prices(
        self,
        start: datetime,
        end: datetime,
        interval: str = "daily",
    ) -> list[PriceQuote]:
        """CoinGecko history, one point per hour or day. Use timezone-aware datetimes."""
        if interval not in HISTORY_BUCKET_MS:
            raise ValueError(f"interval must be one of {sorted(HISTORY_BUCKET_MS)}, got {interval!r}")
        if start >= end:
            raise ValueError("start must be before end")
        if self.history_provider is None:
            logger.info("historical_prices_unavailable", reason="coingecko_disabled")
            return []
        return await self.history_provider.fetch_history(start, end, interval)

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()
