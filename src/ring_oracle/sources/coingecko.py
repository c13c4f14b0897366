"""CoinGecko simple price (fallback A) and market chart history."""

from datetime import datetime
from typing import Any

import httpx

from ring_oracle.logging_config import get_logger
from ring_oracle.models import DEFAULT_TIMEOUT, PriceQuote, PriceSource, format_price
from ring_oracle.sources.base import FallbackProvider, now_ms

logger = get_logger(__name__)

COINGECKO_BASE = "https://api.coingecko.com/api/v3"

HISTORY_BUCKET_MS = {
    "hourly": 3600 * 1000,
    "daily": 86400 * 1000,
}


class CoinGeckoProvider(FallbackProvider):
    source = PriceSource.COINGECKO
    confidence = 0.8

    def __init__(
        self,
        token_id: str,
        base_url: str = COINGECKO_BASE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self.token_id = token_id
        self.base_url = base_url.rstrip("/")

    async def _do_fetch(self, client: httpx.AsyncClient) -> PriceQuote | None:
        resp = await client.get(
            f"{self.base_url}/simple/price",
            params={
                "ids": self.token_id,
                "vs_currencies": "usd",
                "include_last_updated_at": "true",
            },
            headers={"Accept": "application/json"},
        )
        resp.raise_for_status()
        data = resp.json()
        entry = data.get(self.token_id) if isinstance(data, dict) else None
        if not isinstance(entry, dict):
            return None
        price = format_price(entry.get("usd"))
        if price is None:
            return None
        updated = entry.get("last_updated_at")
        try:
            timestamp = int(updated) * 1000 if updated is not None else now_ms()
        except (TypeError, ValueError):
            timestamp = now_ms()
        return self._quote(price, timestamp)

    async def fetch_history(
        self,
        start: datetime,
        end: datetime,
        interval: str = "daily",
    ) -> list[PriceQuote]:
        """
        Price points between start and end, one per hour or UTC day (last point in each bucket).
        Returns [] on any provider failure.
        """
        bucket_ms = HISTORY_BUCKET_MS[interval]
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.base_url}/coins/{self.token_id}/market_chart/range",
                    params={
                        "vs_currency": "usd",
                        "from": int(start.timestamp()),
                        "to": int(end.timestamp()),
                    },
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                data = resp.json()
        except Exception as e:
            logger.warning("coingecko_history_failed", token_id=self.token_id, error=str(e))
            return []
        points: list[Any] = (data.get("prices") or []) if isinstance(data, dict) else []
        by_bucket: dict[int, tuple[int, str]] = {}
        for point in points:
            try:
                ts_ms = int(point[0])
                price = format_price(point[1])
            except (TypeError, ValueError, IndexError):
                continue
            if price is None:
                continue
            bucket = ts_ms // bucket_ms
            current = by_bucket.get(bucket)
            if current is None or ts_ms >= current[0]:
                by_bucket[bucket] = (ts_ms, price)
        return [self._quote(price, ts_ms) for ts_ms, price in sorted(by_bucket.values())]
