"""Configuration from environment. All secrets via env; never in code."""

import re
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ring_oracle.chains import SUPPORTED_CHAIN_IDS, SUPPORTED_CHAINS
from ring_oracle.models import DEFAULT_TIMEOUT, ChainOracleConfig, PriceSource, format_price

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class Settings(BaseSettings):
    """Oracle settings. Load from env; validate on access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(default="development", description="ENV name for startup checks")

    # Tracked token
    token_symbol: str = Field(default="RING", description="Symbol of the tracked token")
    coingecko_token_id: str = Field(default="ring-token", description="CoinGecko coin id")
    binance_symbol: str = Field(default="RINGUSDT", description="Binance ticker pair")
    default_price: str = Field(
        default="1.00", description="Price reported when every source fails"
    )

    # Chains: RPC URLs are comma-separated and tried in order
    default_chain_id: int = Field(default=137, description="Chain used when caller pins none")
    polygon_rpc_url: str = Field(default="https://polygon-rpc.com")
    ethereum_rpc_url: str = Field(default="")
    arbitrum_rpc_url: str = Field(default="")
    base_rpc_url: str = Field(default="")
    chainlink_ring_usd_feed_polygon: str = Field(default="")
    chainlink_ring_usd_feed_ethereum: str = Field(default="")
    chainlink_ring_usd_feed_arbitrum: str = Field(default="")
    chainlink_ring_usd_feed_base: str = Field(default="")
    chainlink_feed_decimals: int = Field(default=8, ge=0, le=36)
    feed_max_age_seconds: float = Field(
        default=3600.0, gt=0, description="Feed updates older than this lower confidence"
    )

    # Fallback providers
    fallback_coingecko_enabled: bool = Field(default=True)
    fallback_coinmarketcap_enabled: bool = Field(default=True)
    fallback_binance_enabled: bool = Field(default=True)
    coinmarketcap_api_key: str | None = Field(
        default=None, description="CoinMarketCap key; provider skipped when unset"
    )
    coingecko_base_url: str = Field(default="https://api.coingecko.com/api/v3")
    coinmarketcap_base_url: str = Field(default="https://pro-api.coinmarketcap.com")
    binance_base_url: str = Field(default="https://api.binance.com")
    source_timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, le=30, description="Per-call timeout for RPC and HTTP sources (seconds)"
    )

    # Cache
    price_cache_enabled: bool = Field(default=True)
    price_cache_ttl_seconds: float = Field(default=300.0, gt=0, le=86400)
    cache_min_confidence: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Quotes must exceed this to be cached"
    )

    @field_validator(
        "chainlink_ring_usd_feed_polygon",
        "chainlink_ring_usd_feed_ethereum",
        "chainlink_ring_usd_feed_arbitrum",
        "chainlink_ring_usd_feed_base",
    )
    @classmethod
    def validate_feed_address(cls, v: str) -> str:
        v = v.strip()
        if v and not ADDRESS_RE.match(v):
            raise ValueError(f"feed address must be 0x followed by 40 hex characters: {v!r}")
        return v

    @field_validator("default_chain_id")
    @classmethod
    def validate_default_chain(cls, v: int) -> int:
        if v not in SUPPORTED_CHAIN_IDS:
            raise ValueError(
                f"DEFAULT_CHAIN_ID must be one of {sorted(SUPPORTED_CHAIN_IDS)}, got {v}"
            )
        return v

    @model_validator(mode="after")
    def validate_default_price(self) -> "Settings":
        """Fail fast if DEFAULT_PRICE is not a positive decimal of at least 0.000001."""
        if format_price(self.default_price) is None:
            raise ValueError(f"DEFAULT_PRICE must be a positive decimal, got {self.default_price!r}")
        return self

    def rpc_urls(self, chain_name: str) -> tuple[str, ...]:
        raw = getattr(self, f"{chain_name}_rpc_url", "") or ""
        return tuple(s.strip() for s in raw.split(",") if s.strip())

    def feed_address(self, chain_name: str) -> str | None:
        return getattr(self, f"chainlink_ring_usd_feed_{chain_name}", "") or None

    def enabled_fallbacks(self) -> tuple[PriceSource, ...]:
        """Globally enabled providers, in fallback order. CoinMarketCap needs an API key."""
        enabled: list[PriceSource] = []
        if self.fallback_coingecko_enabled:
            enabled.append(PriceSource.COINGECKO)
        if self.fallback_coinmarketcap_enabled and (self.coinmarketcap_api_key or "").strip():
            enabled.append(PriceSource.COINMARKETCAP)
        if self.fallback_binance_enabled:
            enabled.append(PriceSource.BINANCE)
        return tuple(enabled)

    def chain_configs(self) -> list[ChainOracleConfig]:
        """One ChainOracleConfig per supported chain, chain policy intersected with global switches."""
        enabled = self.enabled_fallbacks()
        return [
            ChainOracleConfig(
                chain_id=spec.chain_id,
                name=spec.name,
                feed_address=self.feed_address(spec.name),
                rpc_urls=self.rpc_urls(spec.name),
                fallbacks=tuple(s for s in spec.fallbacks if s in enabled),
            )
            for spec in SUPPORTED_CHAINS
        ]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
