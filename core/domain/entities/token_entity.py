from __future__ import annotations

from typing import Optional

from core.domain.entities.base_entity import MongoEntity

UNKNOWN_SYMBOL = "UNKNOWN"


class TokenEntity(MongoEntity):
    """
    An ERC-20 token referenced by a pair.

    `id` is the lowercase contract address. Created lazily on first reference
    and never mutated afterwards.
    """

    decimals: int = 18
    symbol: Optional[str] = UNKNOWN_SYMBOL
    name: Optional[str] = UNKNOWN_SYMBOL

    @property
    def address(self) -> str:
        return self.id
