"""Token <-> USD conversion on top of the cached price. One price lookup per call."""

from collections.abc import Awaitable, Callable

from ring_oracle.logging_config import get_logger
from ring_oracle.models import (
    PriceQuote,
    TokenConversion,
    UsdConversion,
    amount_context,
    format_amount,
    parse_amount,
)

logger = get_logger(__name__)


class ConversionLayer:
    def __init__(self, get_price: Callable[[], Awaitable[PriceQuote]]) -> None:
        self._get_price = get_price

    async def to_usd(self, amount: str) -> UsdConversion:
        """Token amount (decimal string) to USD at the current rate."""
        value = parse_amount(amount)
        quote = await self._get_price()
        usd = format_amount(amount_context().multiply(value, quote.rate))
        logger.info(
            "converted_to_usd",
            token_amount=amount,
            usd_amount=usd,
            rate=quote.price,
            source=quote.source.value,
        )
        return UsdConversion(
            usd_amount=usd,
            token_amount=amount,
            rate=quote.price,
            timestamp=quote.timestamp,
            confidence=quote.confidence,
            source=quote.source,
        )

    async def from_usd(self, usd_amount: str) -> TokenConversion:
        """USD amount (decimal string) to tokens at the current rate."""
        value = parse_amount(usd_amount)
        quote = await self._get_price()
        tokens = format_amount(amount_context().divide(value, quote.rate))
        logger.info(
            "converted_from_usd",
            usd_amount=usd_amount,
            token_amount=tokens,
            rate=quote.price,
            source=quote.source.value,
        )
        return TokenConversion(
            token_amount=tokens,
            usd_amount=usd_amount,
            rate=quote.price,
            timestamp=quote.timestamp,
            confidence=quote.confidence,
            source=quote.source,
        )
