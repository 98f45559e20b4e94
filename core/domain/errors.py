from __future__ import annotations


class IndexerError(Exception):
    """Base class for candle indexer errors."""


class ConfigurationError(IndexerError):
    """Raised at startup when required configuration is missing or invalid."""


class MalformedEventError(IndexerError):
    """
    A decoded event is missing required args or carries invalid values.

    The event is logged and skipped; no candle is touched.
    """

    def __init__(self, message: str, *, event_key: str | None = None) -> None:
        super().__init__(message)
        self.event_key = event_key


class RpcError(IndexerError):
    """JSON-RPC call failed (transport error or `error` member in the response)."""

    def __init__(self, message: str, *, code: int | None = None, data=None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class PriceUnavailableError(IndexerError):
    """
    Price could not be fetched: on-chain reads exhausted their retries.

    Distinct from a zero price, which is valid state. The last underlying error
    is chained as `__cause__`.
    """

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts
