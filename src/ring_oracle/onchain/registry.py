"""One feed client per configured chain, built once at startup."""

from collections.abc import Iterator, Mapping

from ring_oracle.logging_config import get_logger
from ring_oracle.models import DEFAULT_TIMEOUT, ChainOracleConfig
from ring_oracle.onchain.feed_client import ChainFeedClient

logger = get_logger(__name__)


class ChainClientRegistry(Mapping[int, ChainFeedClient]):
    """chain_id -> ChainFeedClient. Chains without a feed address or RPC URL get no client."""

    def __init__(self, clients: Mapping[int, ChainFeedClient]) -> None:
        self._clients = dict(clients)

    @classmethod
    def from_configs(
        cls,
        configs: list[ChainOracleConfig],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "ChainClientRegistry":
        clients: dict[int, ChainFeedClient] = {}
        for cfg in configs:
            if not cfg.feed_enabled:
                logger.info(
                    "chain_client_skipped",
                    chain_id=cfg.chain_id,
                    chain=cfg.name,
                    has_feed=bool(cfg.feed_address),
                    has_rpc=bool(cfg.rpc_urls),
                )
                continue
            clients[cfg.chain_id] = ChainFeedClient(
                chain_id=cfg.chain_id,
                feed_address=cfg.feed_address or "",
                rpc_urls=cfg.rpc_urls,
                timeout=timeout,
            )
            logger.info("chain_client_initialized", chain_id=cfg.chain_id, chain=cfg.name)
        return cls(clients)

    def __getitem__(self, chain_id: int) -> ChainFeedClient:
        return self._clients[chain_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._clients)

    def __len__(self) -> int:
        return len(self._clients)
