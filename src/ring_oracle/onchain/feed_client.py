"""Chainlink-style price feed reads via HTTP JSON-RPC (latestRoundData)."""

from dataclasses import dataclass

import httpx
from eth_abi import decode

from ring_oracle.errors import SourceUnavailable
from ring_oracle.logging_config import get_logger
from ring_oracle.models import DEFAULT_TIMEOUT, PriceSource

logger = get_logger(__name__)

# latestRoundData() selector: first 4 bytes of keccak256("latestRoundData()")
LATEST_ROUND_DATA_SELECTOR = "0xfeaf968c"


@dataclass
class RoundData:
    """Decoded latestRoundData return value."""

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


def decode_latest_round_data(result_hex: str | None) -> RoundData | None:
    """Decode (uint80 roundId, int256 answer, uint256 startedAt, uint256 updatedAt, uint80 answeredInRound)."""
    if not result_hex or not result_hex.startswith("0x"):
        return None
    try:
        raw = bytes.fromhex(result_hex[2:])
    except ValueError:
        return None
    if len(raw) < 32 * 5:
        return None
    try:
        decoded = decode(
            ["uint80", "int256", "uint256", "uint256", "uint80"],
            raw[: 32 * 5],
        )
    except Exception as e:
        logger.warning("feed_decode_failed", error=str(e))
        return None
    return RoundData(
        round_id=decoded[0],
        answer=decoded[1],
        started_at=decoded[2],
        updated_at=decoded[3],
        answered_in_round=decoded[4],
    )


class ChainFeedClient:
    """Read-only client for one chain's price feed contract."""

    def __init__(
        self,
        chain_id: int,
        feed_address: str,
        rpc_urls: tuple[str, ...],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not rpc_urls:
            raise ValueError(f"chain {chain_id}: at least one RPC URL required")
        self.chain_id = chain_id
        self.feed_address = feed_address
        self.rpc_urls = rpc_urls
        self.timeout = timeout

    async def _eth_call(self, client: httpx.AsyncClient, rpc_url: str, data: str) -> str:
        """Execute eth_call; return result hex. Raises on transport or RPC error."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_call",
            "params": [{"to": self.feed_address, "data": data}, "latest"],
        }
        resp = await client.post(
            rpc_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
        out = resp.json()
        err = out.get("error")
        if err:
            raise RuntimeError(f"rpc error {err.get('code')}: {err.get('message')}")
        result = out.get("result")
        if not isinstance(result, str):
            raise RuntimeError("rpc response missing result")
        return result

    async def latest_round_data(self) -> RoundData:
        """
        Read latestRoundData from the feed.
        Tries each RPC URL in order; raises SourceUnavailable when none returns decodable data.
        """
        last_error = "no_rpc_urls"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for rpc_url in self.rpc_urls:
                try:
                    result_hex = await self._eth_call(client, rpc_url, LATEST_ROUND_DATA_SELECTOR)
                except Exception as e:
                    last_error = str(e) or type(e).__name__
                    logger.warning(
                        "feed_eth_call_failed",
                        chain_id=self.chain_id,
                        url=rpc_url,
                        error=last_error,
                    )
                    continue
                round_data = decode_latest_round_data(result_hex)
                if round_data is None:
                    last_error = "malformed_round_data"
                    logger.warning("feed_malformed_response", chain_id=self.chain_id, url=rpc_url)
                    continue
                return round_data
        raise SourceUnavailable(PriceSource.CHAINLINK.value, last_error)
