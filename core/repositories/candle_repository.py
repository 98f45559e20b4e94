from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from core.domain.entities.candle_entity import CandleEntity


class CandleRepository(ABC):
    """
    Repository interface for candle persistence keyed by
    (pair_id, interval, bucket_start).
    """

    @abstractmethod
    async def get(self, pair_id: str, interval: int, bucket_start: int) -> Optional[CandleEntity]:
        """
        Load a candle by its composite key.
        """
        raise NotImplementedError

    @abstractmethod
    async def create_if_absent(self, candle: CandleEntity) -> bool:
        """
        Insert `candle` unless its composite key already exists.

        Returns:
            True if the candle was inserted, False if one was already stored.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, candle: CandleEntity) -> None:
        """
        Upsert a candle by composite key.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_latest_before(
        self,
        pair_id: str,
        interval: int,
        bucket_start: int,
        *,
        not_before: int,
    ) -> Optional[CandleEntity]:
        """
        Most recent candle with not_before <= bucket < bucket_start, if any.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_range(
        self,
        pair_id: str,
        interval: int,
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
    ) -> List[CandleEntity]:
        """
        Candles of one series in ascending bucket order, bounds inclusive.
        """
        raise NotImplementedError
