"""CoinMarketCap quotes/latest (fallback B). Requires an API key; skipped when unset."""

from datetime import datetime

import httpx

from ring_oracle.models import DEFAULT_TIMEOUT, PriceQuote, PriceSource, format_price
from ring_oracle.sources.base import FallbackProvider, now_ms

COINMARKETCAP_BASE = "https://pro-api.coinmarketcap.com"


def _parse_iso_ms(value: object) -> int | None:
    """ISO8601 (with trailing Z) to ms since epoch."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return None


class CoinMarketCapProvider(FallbackProvider):
    source = PriceSource.COINMARKETCAP
    confidence = 0.8

    def __init__(
        self,
        symbol: str,
        api_key: str | None,
        base_url: str = COINMARKETCAP_BASE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self.symbol = symbol.upper()
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _do_fetch(self, client: httpx.AsyncClient) -> PriceQuote | None:
        resp = await client.get(
            f"{self.base_url}/v1/cryptocurrency/quotes/latest",
            params={"symbol": self.symbol},
            headers={"X-CMC_PRO_API_KEY": self.api_key, "Accept": "application/json"},
        )
        resp.raise_for_status()
        data = resp.json()
        try:
            usd = data["data"][self.symbol]["quote"]["USD"]
        except (KeyError, TypeError):
            return None
        if not isinstance(usd, dict):
            return None
        price = format_price(usd.get("price"))
        if price is None:
            return None
        timestamp = _parse_iso_ms(usd.get("last_updated")) or now_ms()
        return self._quote(price, timestamp)
