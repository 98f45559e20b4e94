from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from config.settings import Settings
from core.domain.errors import ConfigurationError
from core.services.retry_policy import RetryPolicy

DEFAULT_INTERVALS: Tuple[int, ...] = (60, 300, 900, 3600, 14400, 86400)


class IndexerConfig(BaseModel):
    """
    Immutable runtime configuration for the candle indexer.

    Built once at process start and passed explicitly into the dispatcher,
    price resolver and candle engine.
    """

    treasury_address: str
    lmkt_address: str
    collateral_address: str

    intervals: Tuple[int, ...] = DEFAULT_INTERVALS
    backfill_max_steps: int = 1000
    future_tolerance_s: int = 300
    token_decimals: int = 18

    retry_policy: RetryPolicy = RetryPolicy()

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("treasury_address", "lmkt_address", "collateral_address")
    @classmethod
    def _normalize_address(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if not v:
            raise ValueError("address is required")
        return v

    @field_validator("intervals")
    @classmethod
    def _positive_intervals(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if not v or any(int(i) <= 0 for i in v):
            raise ValueError("intervals must be a non-empty list of positive seconds")
        return tuple(int(i) for i in v)

    @classmethod
    def from_settings(cls, s: Settings) -> "IndexerConfig":
        """
        Build the config from environment-backed settings.

        Raises:
            ConfigurationError: when an address or the interval list is invalid.
        """
        try:
            intervals = tuple(int(x) for x in (s.CANDLE_INTERVALS or "").split(",") if x.strip())
            return cls(
                treasury_address=s.TREASURY_ADDRESS,
                lmkt_address=s.LMKT_ADDRESS,
                collateral_address=s.COLLATERAL_ADDRESS,
                intervals=intervals or DEFAULT_INTERVALS,
                backfill_max_steps=int(s.BACKFILL_MAX_STEPS),
                future_tolerance_s=int(s.FUTURE_TOLERANCE_S),
                retry_policy=RetryPolicy(
                    max_attempts=int(s.RETRY_MAX_ATTEMPTS),
                    initial_delay_ms=int(s.RETRY_INITIAL_DELAY_MS),
                    backoff_multiplier=float(s.RETRY_BACKOFF_MULTIPLIER),
                ),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid indexer configuration: {exc}") from exc
