"""Binance spot ticker (fallback C)."""

import httpx

from ring_oracle.models import DEFAULT_TIMEOUT, PriceQuote, PriceSource, format_price
from ring_oracle.sources.base import FallbackProvider, now_ms

BINANCE_BASE = "https://api.binance.com"


class BinanceProvider(FallbackProvider):
    source = PriceSource.BINANCE
    confidence = 0.7

    def __init__(
        self,
        symbol: str,
        base_url: str = BINANCE_BASE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self.symbol = symbol.upper()
        self.base_url = base_url.rstrip("/")

    async def _do_fetch(self, client: httpx.AsyncClient) -> PriceQuote | None:
        resp = await client.get(
            f"{self.base_url}/api/v3/ticker/price",
            params={"symbol": self.symbol},
        )
        resp.raise_for_status()
        data = resp.json()
        price = format_price(data.get("price")) if isinstance(data, dict) else None
        if price is None:
            return None
        # ticker/price carries no update time; the fetch time stands in
        return self._quote(price, now_ms())
