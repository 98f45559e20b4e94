from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.pair_entity import PairEntity


class PairRepository(ABC):
    """
    Abstraction for pair persistence.

    Exactly one pair per venue address; token references and creation time are
    never overwritten once stored.
    """

    @abstractmethod
    async def get(self, pair_id: str) -> Optional[PairEntity]:
        """
        Retrieve a pair by venue address.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert_if_absent(self, pair: PairEntity) -> PairEntity:
        """
        Atomically persist `pair` unless it exists.

        Returns:
            The stored pair, which is the pre-existing record on conflict.
        """
        raise NotImplementedError
