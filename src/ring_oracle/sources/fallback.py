"""Off-chain fallback providers tried in fixed order; first parseable price wins."""

from collections.abc import Collection, Sequence

from ring_oracle.logging_config import get_logger
from ring_oracle.models import STATUS_OK, STATUS_SKIPPED, PriceQuote, PriceSource, SourceAttempt
from ring_oracle.sources.base import FallbackProvider

logger = get_logger(__name__)


class FallbackSourceSet:
    """Ordered providers (CoinGecko, CoinMarketCap, Binance in production)."""

    def __init__(self, providers: Sequence[FallbackProvider]) -> None:
        self.providers = list(providers)

    async def try_fallbacks(
        self,
        allowed: Collection[PriceSource] | None = None,
        attempts: list[SourceAttempt] | None = None,
    ) -> PriceQuote | None:
        """
        Try each provider once, in order. Providers not in allowed (when given) are skipped.
        No provider failure is raised; attempts (when given) receives one entry per provider.
        """
        trace = attempts if attempts is not None else []
        for provider in self.providers:
            if allowed is not None and provider.source not in allowed:
                trace.append(
                    SourceAttempt(
                        source=provider.source,
                        chain_id=None,
                        status=STATUS_SKIPPED,
                        error="not_allowed_for_chain",
                    )
                )
                continue
            attempt = await provider.attempt()
            trace.append(attempt)
            if attempt.status == STATUS_OK and attempt.quote is not None:
                logger.info(
                    "fallback_price_resolved",
                    source=provider.source.value,
                    price=attempt.quote.price,
                )
                return attempt.quote
        return None
