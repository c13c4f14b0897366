"""Base fallback provider: one HTTP price API behind fetch_quote(), failures contained."""

import time
from abc import ABC, abstractmethod

import httpx

from ring_oracle.logging_config import get_logger
from ring_oracle.models import (
    DEFAULT_TIMEOUT,
    STATUS_FAILED,
    STATUS_NO_QUOTE,
    STATUS_OK,
    STATUS_SKIPPED,
    PriceQuote,
    PriceSource,
    SourceAttempt,
)

logger = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def error_attempt(source: PriceSource, error: str | Exception) -> SourceAttempt:
    """Build a failed SourceAttempt for the given provider. Logs warning."""
    err_str = (str(error) or type(error).__name__) if isinstance(error, Exception) else error
    logger.warning("fallback_provider_failed", source=source.value, error=err_str)
    return SourceAttempt(source=source, chain_id=None, status=STATUS_FAILED, error=err_str)


class FallbackProvider(ABC):
    """Off-chain spot price API. Subclasses parse their own response schema in _do_fetch."""

    source: PriceSource
    confidence: float

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        """False when the provider cannot run at all (e.g. missing API key)."""
        return True

    def _quote(self, price: str, timestamp: int) -> PriceQuote:
        return PriceQuote(
            price=price,
            timestamp=timestamp,
            source=self.source,
            confidence=self.confidence,
        )

    @abstractmethod
    async def _do_fetch(self, client: httpx.AsyncClient) -> PriceQuote | None:
        """Request and parse. Return None when the token is not listed; raise on transport errors."""
        ...

    async def attempt(self) -> SourceAttempt:
        """Run one fetch; never raises."""
        if not self.enabled:
            return SourceAttempt(
                source=self.source, chain_id=None, status=STATUS_SKIPPED, error="not_configured"
            )
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                quote = await self._do_fetch(client)
        except Exception as e:
            return error_attempt(self.source, e)
        if quote is None:
            logger.info("fallback_provider_no_quote", source=self.source.value)
            return SourceAttempt(
                source=self.source, chain_id=None, status=STATUS_NO_QUOTE, error="no_price"
            )
        return SourceAttempt(source=self.source, chain_id=None, status=STATUS_OK, quote=quote)

    async def fetch_quote(self) -> PriceQuote | None:
        return (await self.attempt()).quote
