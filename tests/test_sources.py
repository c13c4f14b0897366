"""Fallback providers: per-provider parsing and error boundaries, fixed fallback order."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from fakes import FakeProvider
from ring_oracle.models import STATUS_FAILED, STATUS_NO_QUOTE, STATUS_OK, STATUS_SKIPPED, PriceSource
from ring_oracle.sources.binance import BinanceProvider
from ring_oracle.sources.coingecko import CoinGeckoProvider
from ring_oracle.sources.coinmarketcap import CoinMarketCapProvider
from ring_oracle.sources.fallback import FallbackSourceSet

CG_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
CMC_URL = "https://pro-api.coinmarketcap.com/v1/cryptocurrency/quotes/latest"
BINANCE_URL = "https://api.binance.com/api/v3/ticker/price"


@pytest.mark.asyncio
async def test_coingecko_quote() -> None:
    provider = CoinGeckoProvider("ring-token")
    with respx.mock:
        route = respx.get(CG_PRICE_URL).mock(
            return_value=httpx.Response(
                200, json={"ring-token": {"usd": 0.0421, "last_updated_at": 1700000000}}
            )
        )
        quote = await provider.fetch_quote()
    assert quote is not None
    assert quote.price == "0.042100"
    assert quote.timestamp == 1700000000 * 1000
    assert quote.source == PriceSource.COINGECKO
    assert quote.confidence == 0.8
    assert quote.chain_id is None
    assert route.calls.last.request.url.params["ids"] == "ring-token"


@pytest.mark.asyncio
async def test_coingecko_token_not_listed() -> None:
    provider = CoinGeckoProvider("ring-token")
    with respx.mock:
        respx.get(CG_PRICE_URL).mock(return_value=httpx.Response(200, json={}))
        attempt = await provider.attempt()
    assert attempt.status == STATUS_NO_QUOTE
    assert attempt.quote is None


@pytest.mark.asyncio
async def test_coingecko_http_error_is_contained() -> None:
    """Non-2xx is a failed attempt, not an exception."""
    provider = CoinGeckoProvider("ring-token")
    with respx.mock:
        respx.get(CG_PRICE_URL).mock(return_value=httpx.Response(429))
        attempt = await provider.attempt()
    assert attempt.status == STATUS_FAILED
    assert "429" in (attempt.error or "")


@pytest.mark.asyncio
async def test_coingecko_network_error_is_contained() -> None:
    provider = CoinGeckoProvider("ring-token")
    with respx.mock:
        respx.get(CG_PRICE_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
        assert await provider.fetch_quote() is None


@pytest.mark.asyncio
async def test_coinmarketcap_quote_with_key_header() -> None:
    provider = CoinMarketCapProvider("ring", api_key="secret")
    body = {
        "data": {
            "RING": {"quote": {"USD": {"price": 1.23, "last_updated": "2024-01-01T00:00:00.000Z"}}}
        }
    }
    with respx.mock:
        route = respx.get(CMC_URL).mock(return_value=httpx.Response(200, json=body))
        quote = await provider.fetch_quote()
    assert quote is not None
    assert quote.price == "1.230000"
    assert quote.source == PriceSource.COINMARKETCAP
    assert quote.timestamp == int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
    request = route.calls.last.request
    assert request.headers["X-CMC_PRO_API_KEY"] == "secret"
    assert request.url.params["symbol"] == "RING"


@pytest.mark.asyncio
async def test_coinmarketcap_without_key_is_skipped() -> None:
    """No API key: skipped entirely, no request made."""
    provider = CoinMarketCapProvider("RING", api_key=None)
    with respx.mock(assert_all_called=False):
        route = respx.get(CMC_URL)
        attempt = await provider.attempt()
    assert attempt.status == STATUS_SKIPPED
    assert not route.called


@pytest.mark.asyncio
async def test_coinmarketcap_missing_symbol() -> None:
    provider = CoinMarketCapProvider("RING", api_key="secret")
    with respx.mock:
        respx.get(CMC_URL).mock(return_value=httpx.Response(200, json={"data": {}}))
        assert await provider.fetch_quote() is None


@pytest.mark.asyncio
async def test_binance_quote() -> None:
    provider = BinanceProvider("ringusdt")
    with respx.mock:
        route = respx.get(BINANCE_URL).mock(
            return_value=httpx.Response(200, json={"symbol": "RINGUSDT", "price": "0.98765432"})
        )
        quote = await provider.fetch_quote()
    assert quote is not None
    assert quote.price == "0.987654"
    assert quote.confidence == 0.7
    assert route.calls.last.request.url.params["symbol"] == "RINGUSDT"


@pytest.mark.asyncio
async def test_binance_unparseable_price_is_absent() -> None:
    provider = BinanceProvider("RINGUSDT")
    with respx.mock:
        respx.get(BINANCE_URL).mock(
            return_value=httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})
        )
        assert await provider.fetch_quote() is None
    with respx.mock:
        respx.get(BINANCE_URL).mock(return_value=httpx.Response(200, json={"price": "n/a"}))
        assert await provider.fetch_quote() is None


@pytest.mark.asyncio
async def test_sub_micro_provider_price_is_no_quote() -> None:
    """A price that rounds to 0.000000 is absent, so the fallback chain moves on."""
    provider = BinanceProvider("RINGUSDT")
    with respx.mock:
        respx.get(BINANCE_URL).mock(
            return_value=httpx.Response(200, json={"symbol": "RINGUSDT", "price": "0.00000010"})
        )
        attempt = await provider.attempt()
    assert attempt.status == STATUS_NO_QUOTE
    assert attempt.quote is None


@pytest.mark.asyncio
async def test_fallback_order_first_success_wins() -> None:
    """A fails, B succeeds: B's quote returned, C never called."""
    calls: list[PriceSource] = []
    fallbacks = FallbackSourceSet(
        [
            FakeProvider(PriceSource.COINGECKO, error=RuntimeError("down"), calls=calls),
            FakeProvider(PriceSource.COINMARKETCAP, price="1.25", calls=calls),
            FakeProvider(PriceSource.BINANCE, price="9.99", calls=calls, confidence=0.7),
        ]
    )
    attempts: list = []
    quote = await fallbacks.try_fallbacks(attempts=attempts)
    assert quote is not None
    assert quote.source == PriceSource.COINMARKETCAP
    assert quote.price == "1.25"
    assert calls == [PriceSource.COINGECKO, PriceSource.COINMARKETCAP]
    assert [a.status for a in attempts] == [STATUS_FAILED, STATUS_OK]


@pytest.mark.asyncio
async def test_fallback_skips_disallowed_and_disabled() -> None:
    calls: list[PriceSource] = []
    fallbacks = FallbackSourceSet(
        [
            FakeProvider(PriceSource.COINGECKO, price="1.0", calls=calls),
            FakeProvider(PriceSource.COINMARKETCAP, price="2.0", calls=calls, enabled=False),
            FakeProvider(PriceSource.BINANCE, price="3.0", calls=calls, confidence=0.7),
        ]
    )
    attempts: list = []
    quote = await fallbacks.try_fallbacks(
        allowed=(PriceSource.COINMARKETCAP, PriceSource.BINANCE), attempts=attempts
    )
    assert quote is not None
    assert quote.source == PriceSource.BINANCE
    assert calls == [PriceSource.BINANCE]
    assert [(a.source, a.status) for a in attempts] == [
        (PriceSource.COINGECKO, STATUS_SKIPPED),
        (PriceSource.COINMARKETCAP, STATUS_SKIPPED),
        (PriceSource.BINANCE, STATUS_OK),
    ]


@pytest.mark.asyncio
async def test_fallback_all_fail_returns_none() -> None:
    fallbacks = FallbackSourceSet(
        [
            FakeProvider(PriceSource.COINGECKO, error=RuntimeError("a")),
            FakeProvider(PriceSource.COINMARKETCAP),
            FakeProvider(PriceSource.BINANCE, error=RuntimeError("c")),
        ]
    )
    assert await fallbacks.try_fallbacks() is None
    assert await fallbacks.try_fallbacks(allowed=()) is None


@pytest.mark.asyncio
async def test_coingecko_history_buckets() -> None:
    """Keeps the last point per day, sorted, skipping junk points."""
    provider = CoinGeckoProvider("ring-token")
    day = 86400 * 1000
    prices = [
        [day * 10 + 1000, 1.0],
        [day * 10 + 5000, 1.1],
        [day * 11 + 1000, "bad"],
        [day * 11 + 2000, 1.2],
        [day * 12],
    ]
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 1, 5, tzinfo=timezone.utc)
    with respx.mock:
        route = respx.get(
            "https://api.coingecko.com/api/v3/coins/ring-token/market_chart/range"
        ).mock(return_value=httpx.Response(200, json={"prices": prices}))
        history = await provider.fetch_history(start, end, "daily")
    assert [q.price for q in history] == ["1.100000", "1.200000"]
    assert [q.timestamp for q in history] == [day * 10 + 5000, day * 11 + 2000]
    assert route.calls.last.request.url.params["from"] == str(int(start.timestamp()))


@pytest.mark.asyncio
async def test_coingecko_history_failure_returns_empty() -> None:
    provider = CoinGeckoProvider("ring-token")
    with respx.mock:
        respx.get(
            "https://api.coingecko.com/api/v3/coins/ring-token/market_chart/range"
        ).mock(return_value=httpx.Response(500))
        history = await provider.fetch_history(
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 1, 2, tzinfo=timezone.utc),
            "hourly",
        )
    assert history == []
