from __future__ import annotations

from typing import Optional

from core.domain.entities.base_entity import MongoEntity


class PurchaseEntity(MongoEntity):
    """
    Audit record for a marketplace purchase paid in LMKT.

    Keyed by event key. Written once, never mutated.
    """

    listing_id: Optional[str] = None
    buyer: Optional[str] = None
    seller: Optional[str] = None
    token: str
    lmkt_amount: float
    lmkt_amount_raw: str
    price: float
    block_number: int
    timestamp: int
    transaction_hash: str
