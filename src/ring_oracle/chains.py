"""Chains the oracle knows about and their fallback policy.

L2 chains restrict which off-chain providers may stand in for the feed:
arbitrum trusts CoinGecko only, base trusts none.
"""

from dataclasses import dataclass

from ring_oracle.models import FALLBACK_ORDER, PriceSource


@dataclass(frozen=True)
class ChainSpec:
    chain_id: int
    name: str
    is_l2: bool
    fallbacks: tuple[PriceSource, ...]


SUPPORTED_CHAINS: tuple[ChainSpec, ...] = (
    ChainSpec(chain_id=137, name="polygon", is_l2=False, fallbacks=FALLBACK_ORDER),
    ChainSpec(chain_id=1, name="ethereum", is_l2=False, fallbacks=FALLBACK_ORDER),
    ChainSpec(chain_id=42161, name="arbitrum", is_l2=True, fallbacks=(PriceSource.COINGECKO,)),
    ChainSpec(chain_id=8453, name="base", is_l2=True, fallbacks=()),
)

SUPPORTED_CHAIN_IDS: frozenset[int] = frozenset(c.chain_id for c in SUPPORTED_CHAINS)


def get_chain_spec(chain_id: int) -> ChainSpec | None:
    for spec in SUPPORTED_CHAINS:
        if spec.chain_id == chain_id:
            return spec
    return None
