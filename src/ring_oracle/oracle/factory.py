"""Composition root: build the oracle object graph once from Settings."""

from dataclasses import dataclass

from ring_oracle.config import Settings, get_settings
from ring_oracle.logging_config import get_logger
from ring_oracle.models import PriceSource
from ring_oracle.onchain.registry import ChainClientRegistry
from ring_oracle.oracle.aggregator import MultiChainAggregator
from ring_oracle.oracle.cache import PriceCache
from ring_oracle.oracle.conversion import ConversionLayer
from ring_oracle.oracle.resolver import PriceResolver
from ring_oracle.oracle.service import PriceOracleService
from ring_oracle.sources.base import FallbackProvider
from ring_oracle.sources.binance import BinanceProvider
from ring_oracle.sources.coingecko import CoinGeckoProvider
from ring_oracle.sources.coinmarketcap import CoinMarketCapProvider
from ring_oracle.sources.fallback import FallbackSourceSet

logger = get_logger(__name__)


@dataclass
class PriceOracle:
    """Handle passed to request handlers. Tests build their own with fakes."""

    settings: Settings
    service: PriceOracleService
    aggregator: MultiChainAggregator
    conversion: ConversionLayer


def build_fallback_providers(settings: Settings) -> list[FallbackProvider]:
    """All three providers in fallback order; per-chain policy decides which may run."""
    return [
        CoinGeckoProvider(
            token_id=settings.coingecko_token_id,
            base_url=settings.coingecko_base_url,
            timeout=settings.source_timeout,
        ),
        CoinMarketCapProvider(
            symbol=settings.token_symbol,
            api_key=settings.coinmarketcap_api_key,
            base_url=settings.coinmarketcap_base_url,
            timeout=settings.source_timeout,
        ),
        BinanceProvider(
            symbol=settings.binance_symbol,
            base_url=settings.binance_base_url,
            timeout=settings.source_timeout,
        ),
    ]


def build_price_oracle(settings: Settings | None = None) -> PriceOracle:
    settings = settings or get_settings()
    configs = settings.chain_configs()
    clients = ChainClientRegistry.from_configs(configs, timeout=settings.source_timeout)
    providers = build_fallback_providers(settings)
    resolver = PriceResolver(
        chain_configs=configs,
        clients=clients,
        fallbacks=FallbackSourceSet(providers),
        default_chain_id=settings.default_chain_id,
        feed_decimals=settings.chainlink_feed_decimals,
        max_feed_age_seconds=settings.feed_max_age_seconds,
    )
    history: CoinGeckoProvider | None = None
    if PriceSource.COINGECKO in settings.enabled_fallbacks():
        history = next(p for p in providers if isinstance(p, CoinGeckoProvider))
    service = PriceOracleService(
        settings=settings,
        resolver=resolver,
        cache=PriceCache(ttl_seconds=settings.price_cache_ttl_seconds),
        history_provider=history,
    )
    logger.info(
        "price_oracle_built",
        default_chain_id=settings.default_chain_id,
        feed_chains=sorted(clients),
        fallbacks=[s.value for s in settings.enabled_fallbacks()],
        cache_enabled=settings.price_cache_enabled,
    )
    return PriceOracle(
        settings=settings,
        service=service,
        aggregator=MultiChainAggregator(service, [c.chain_id for c in configs]),
        conversion=ConversionLayer(service.get_ring_usd_price),
    )
