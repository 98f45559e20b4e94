# core/domain/entities/candle_entity.py
from __future__ import annotations

from typing import Optional, Tuple

from core.domain.entities.base_entity import MongoEntity


class CandleEntity(MongoEntity):
    """
    One OHLCV record for a pair, interval and bucket.

    Identity is the composite (pair_id, interval, bucket_start); `id` is its
    string form "{pair_id}-{interval}-{bucket_start}".

    Invariants:
    - low <= min(open, close) and max(open, close) <= high
    - trades only counts updates that contributed volume;
      backfilled candles have zero volume and zero trades
    - open equals the previous bucket's close when that candle exists

    `last_block`/`last_log_index` record the position of the last applied
    event; backfilled candles leave them unset.
    """

    pair_id: str
    interval: int
    bucket_start: int

    open: float
    high: float
    low: float
    close: float

    volume_token0: float = 0.0
    volume_token1: float = 0.0
    trades: int = 0

    last_block: Optional[int] = None
    last_log_index: Optional[int] = None

    @property
    def last_event(self) -> Optional[Tuple[int, int]]:
        if self.last_block is None or self.last_log_index is None:
            return None
        return (int(self.last_block), int(self.last_log_index))
