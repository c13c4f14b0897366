"""Price oracle data model: quotes, per-chain config, resolution trace, conversion results."""

import decimal
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# All resolved prices and conversion outputs are reported to 6 decimal places.
PRICE_QUANTUM = Decimal("0.000001")

# Caller amounts above this are rejected; 60 digits covers MAX_AMOUNT / PRICE_QUANTUM at 6 places.
MAX_AMOUNT = Decimal("1e24")
AMOUNT_PRECISION = 60

# Per-call timeout for RPC and provider HTTP calls (seconds).
DEFAULT_TIMEOUT = 5.0

CONFIDENCE_FEED_FRESH = 0.9
CONFIDENCE_FEED_STALE = 0.7
CONFIDENCE_DEFAULT = 0.1


class PriceSource(str, Enum):
    """Provenance tag carried by every quote."""

    CHAINLINK = "chainlink"
    COINGECKO = "coingecko"
    COINMARKETCAP = "coinmarketcap"
    BINANCE = "binance"
    DEFAULT = "default"


FALLBACK_ORDER: tuple[PriceSource, ...] = (
    PriceSource.COINGECKO,
    PriceSource.COINMARKETCAP,
    PriceSource.BINANCE,
)


class PriceQuote(BaseModel):
    """USD price of one unit of the tracked token."""

    price: str
    timestamp: int = Field(..., description="ms since epoch when the source last updated the value")
    source: PriceSource
    confidence: float = Field(..., ge=0.0, le=1.0)
    chain_id: int | None = None

    model_config = {"frozen": True}

    @property
    def rate(self) -> Decimal:
        return Decimal(self.price)


class BestPrice(BaseModel):
    """Winning quote of a multi-chain comparison and the chain it was resolved for."""

    chain_id: int
    quote: PriceQuote


class UsdConversion(BaseModel):
    usd_amount: str
    token_amount: str
    rate: str
    timestamp: int
    confidence: float
    source: PriceSource


class TokenConversion(BaseModel):
    token_amount: str
    usd_amount: str
    rate: str
    timestamp: int
    confidence: float
    source: PriceSource


class CacheStatsEntry(BaseModel):
    key: str
    chain_id: int | None
    expires_at: int
    source: PriceSource


class CacheStats(BaseModel):
    size: int
    entries: list[CacheStatsEntry]


@dataclass(frozen=True)
class ChainOracleConfig:
    """Static per-chain oracle settings, built once from Settings."""

    chain_id: int
    name: str
    feed_address: str | None
    rpc_urls: tuple[str, ...]
    fallbacks: tuple[PriceSource, ...]

    @property
    def feed_enabled(self) -> bool:
        return bool(self.feed_address) and bool(self.rpc_urls)


@dataclass
class CacheEntry:
    data: PriceQuote
    expires_at: int
    chain_id: int | None


# SourceAttempt.status values
STATUS_OK = "ok"
STATUS_NO_QUOTE = "no_quote"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class SourceAttempt:
    """One source consulted during a resolution pass."""

    source: PriceSource
    chain_id: int | None
    status: str
    error: str | None = None
    quote: PriceQuote | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "chain_id": self.chain_id,
            "status": self.status,
            "error": self.error,
            "price": self.quote.price if self.quote else None,
        }


@dataclass
class Resolution:
    """Final quote (or None) plus the ordered list of sources tried."""

    quote: PriceQuote | None
    attempts: list[SourceAttempt] = field(default_factory=list)
    cached: bool = False

    def sources_tried(self) -> list[PriceSource]:
        return [a.source for a in self.attempts if a.status != STATUS_SKIPPED]


def parse_price(raw: Any) -> Decimal | None:
    """Parse a provider price; None unless it is a finite decimal greater than zero."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def format_price(raw: Any) -> str | None:
    """Parse and format to 6 decimal places; None if unparseable or below one micro-unit."""
    value = parse_price(raw)
    if value is None:
        return None
    try:
        price = value.quantize(PRICE_QUANTUM)
    except InvalidOperation:
        return None
    if price.is_zero():
        return None
    return str(price)


def parse_amount(raw: str) -> Decimal:
    """Parse a caller-supplied amount. Raises ValueError unless finite, non-negative and <= MAX_AMOUNT."""
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {raw!r}") from e
    if not value.is_finite() or value < 0:
        raise ValueError(f"Amount must be a finite non-negative decimal: {raw!r}")
    if value > MAX_AMOUNT:
        raise ValueError(f"Amount exceeds {MAX_AMOUNT}: {raw!r}")
    return value


def amount_context() -> decimal.Context:
    """Wide enough for MAX_AMOUNT divided by the smallest rate, at 6 places."""
    return decimal.Context(prec=AMOUNT_PRECISION)


def format_amount(value: Decimal) -> str:
    try:
        return str(value.quantize(PRICE_QUANTUM, context=amount_context()))
    except InvalidOperation as e:
        raise ValueError(f"Amount out of range: {value}") from e
