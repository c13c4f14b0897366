"""Oracle error types."""


class OracleError(Exception):
    """Base class for price oracle errors."""


class SourceUnavailable(OracleError):
    """A single price source failed (network, parse or contract call). Always handled locally."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class NoPriceAvailable(OracleError):
    """No chain produced a usable quote."""


class UnsupportedToken(OracleError):
    """Caller asked about a token the oracle does not track."""

    def __init__(self, symbol: str, tracked: str) -> None:
        super().__init__(f"Unsupported token {symbol!r}; this oracle tracks {tracked!r}")
        self.symbol = symbol
        self.tracked = tracked
