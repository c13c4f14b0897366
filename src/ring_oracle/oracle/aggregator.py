"""Multi-chain view of the token price: per chain, all chains, best chain."""

import asyncio
from collections.abc import Iterable

from ring_oracle.errors import NoPriceAvailable, UnsupportedToken
from ring_oracle.logging_config import get_logger
from ring_oracle.models import BestPrice, PriceQuote
from ring_oracle.oracle.service import PriceOracleService

logger = get_logger(__name__)


def pick_best(prices: dict[int, PriceQuote]) -> BestPrice:
    """Highest confidence wins; ties go to the newest timestamp."""
    if not prices:
        raise NoPriceAvailable("no chain produced a price")
    chain_id, quote = max(prices.items(), key=lambda item: (item[1].confidence, item[1].timestamp))
    return BestPrice(chain_id=chain_id, quote=quote)


class MultiChainAggregator:
    def __init__(self, service: PriceOracleService, chain_ids: Iterable[int]) -> None:
        self.service = service
        self.chain_ids = list(chain_ids)

    def _check_symbol(self, symbol: str | None) -> None:
        tracked = self.service.token_symbol
        if symbol is not None and symbol.upper() != tracked:
            raise UnsupportedToken(symbol, tracked)

    async def get_for_chain(self, chain_id: int, symbol: str | None = None) -> PriceQuote:
        """Cached price pinned to chain_id; degrades to the default quote."""
        self._check_symbol(symbol)
        quote = await self.service.get_price(chain_id)
        return quote if quote is not None else self.service.default_quote()

    async def get_all_chains(self, symbol: str | None = None) -> dict[int, PriceQuote]:
        """Resolve every chain concurrently. Chains with no price are left out."""
        self._check_symbol(symbol)
        quotes = await asyncio.gather(
            *(self.service.get_price(chain_id, allow_default=False) for chain_id in self.chain_ids)
        )
        prices = {
            chain_id: quote
            for chain_id, quote in zip(self.chain_ids, quotes)
            if quote is not None
        }
        missing = [c for c in self.chain_ids if c not in prices]
        if missing:
            logger.info("chains_without_price", chain_ids=missing)
        return prices

    async def get_best(self, symbol: str | None = None) -> BestPrice:
        prices = await self.get_all_chains(symbol)
        best = pick_best(prices)
        logger.info(
            "best_price_selected",
            chain_id=best.chain_id,
            price=best.quote.price,
            source=best.quote.source.value,
            confidence=best.quote.confidence,
        )
        return best
