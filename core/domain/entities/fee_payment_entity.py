from __future__ import annotations

from typing import Optional

from core.domain.entities.base_entity import MongoEntity


class FeePaymentEntity(MongoEntity):
    """
    Audit record for a fee that reached the treasury.

    Keyed by event key ("{tx_hash}:{log_index}"). Written once, never mutated.

    source is "listing_created" | "listing_renewed" | "fee_transfer".
    """

    source: str
    payer: Optional[str] = None
    token: str
    amount: float
    amount_raw: str  # uint256 kept as str to avoid int overflow / bson issues
    block_number: int
    timestamp: int
    transaction_hash: str
