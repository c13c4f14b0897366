"""Price resolution: chain feed -> fallback providers -> other chains' feeds.

The resolver never invents a price. When every source fails it returns None and
the caller decides whether to degrade to a default quote.
"""

import time
from collections.abc import Callable, Iterable
from decimal import Decimal

from ring_oracle.logging_config import get_logger
from ring_oracle.models import (
    CONFIDENCE_FEED_FRESH,
    CONFIDENCE_FEED_STALE,
    STATUS_FAILED,
    STATUS_OK,
    STATUS_SKIPPED,
    ChainOracleConfig,
    PriceQuote,
    PriceSource,
    Resolution,
    SourceAttempt,
    format_price,
)
from ring_oracle.onchain.registry import ChainClientRegistry
from ring_oracle.sources.fallback import FallbackSourceSet

logger = get_logger(__name__)


class PriceResolver:
    def __init__(
        self,
        chain_configs: Iterable[ChainOracleConfig],
        clients: ChainClientRegistry,
        fallbacks: FallbackSourceSet,
        default_chain_id: int,
        feed_decimals: int = 8,
        max_feed_age_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.configs = {cfg.chain_id: cfg for cfg in chain_configs}
        self.clients = clients
        self.fallbacks = fallbacks
        self.default_chain_id = default_chain_id
        self.feed_decimals = feed_decimals
        self.max_feed_age_seconds = max_feed_age_seconds
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def resolve(self, chain_id: int | None = None) -> PriceQuote | None:
        """Quote for chain_id, or for the default chain (with cross-chain retry) when None."""
        return (await self.resolve_with_trace(chain_id)).quote

    async def resolve_with_trace(self, chain_id: int | None = None) -> Resolution:
        pinned = chain_id is not None
        target = chain_id if chain_id is not None else self.default_chain_id
        attempts: list[SourceAttempt] = []

        cfg = self.configs.get(target)
        if cfg is None:
            logger.warning("resolve_unknown_chain", chain_id=target)
            attempts.append(
                SourceAttempt(
                    source=PriceSource.CHAINLINK,
                    chain_id=target,
                    status=STATUS_SKIPPED,
                    error="unknown_chain",
                )
            )
            return Resolution(quote=None, attempts=attempts)

        quote = await self.read_feed(target, attempts)
        if quote is None:
            quote = await self.fallbacks.try_fallbacks(cfg.fallbacks, attempts)

        # A healthy feed on another chain beats giving up on the default chain
        if quote is None and not pinned:
            for other_id in self.clients:
                if other_id == target:
                    continue
                quote = await self.read_feed(other_id, attempts)
                if quote is not None:
                    logger.info(
                        "cross_chain_price_resolved",
                        requested_chain_id=target,
                        chain_id=other_id,
                        price=quote.price,
                    )
                    break

        if quote is None:
            logger.warning(
                "price_unresolved",
                chain_id=target,
                pinned=pinned,
                attempts=[a.to_dict() for a in attempts],
            )
        return Resolution(quote=quote, attempts=attempts)

    async def read_feed(
        self,
        chain_id: int,
        attempts: list[SourceAttempt] | None = None,
    ) -> PriceQuote | None:
        """Read and score one chain's feed. Errors are logged and recorded, never raised."""
        trace = attempts if attempts is not None else []
        client = self.clients.get(chain_id)
        if client is None:
            trace.append(
                SourceAttempt(
                    source=PriceSource.CHAINLINK,
                    chain_id=chain_id,
                    status=STATUS_SKIPPED,
                    error="feed_disabled",
                )
            )
            return None
        try:
            round_data = await client.latest_round_data()
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.warning("feed_read_failed", chain_id=chain_id, error=error)
            trace.append(
                SourceAttempt(
                    source=PriceSource.CHAINLINK,
                    chain_id=chain_id,
                    status=STATUS_FAILED,
                    error=error,
                )
            )
            return None

        price = format_price(Decimal(round_data.answer).scaleb(-self.feed_decimals))
        if price is None or round_data.updated_at <= 0:
            logger.warning(
                "feed_malformed_answer",
                chain_id=chain_id,
                answer=round_data.answer,
                updated_at=round_data.updated_at,
            )
            trace.append(
                SourceAttempt(
                    source=PriceSource.CHAINLINK,
                    chain_id=chain_id,
                    status=STATUS_FAILED,
                    error="malformed_answer",
                )
            )
            return None

        timestamp = int(round_data.updated_at) * 1000
        age_ms = self._now_ms() - timestamp
        fresh = age_ms < self.max_feed_age_seconds * 1000
        if not fresh:
            logger.info("feed_stale", chain_id=chain_id, age_seconds=age_ms / 1000)
        quote = PriceQuote(
            price=price,
            timestamp=timestamp,
            source=PriceSource.CHAINLINK,
            confidence=CONFIDENCE_FEED_FRESH if fresh else CONFIDENCE_FEED_STALE,
            chain_id=chain_id,
        )
        trace.append(
            SourceAttempt(
                source=PriceSource.CHAINLINK,
                chain_id=chain_id,
                status=STATUS_OK,
                quote=quote,
            )
        )
        return quote
