from __future__ import annotations

from core.domain.entities.base_entity import MongoEntity


class ProcessedEventEntity(MongoEntity):
    """
    Marker written after every interval of an event has been applied.

    `id` is the event key "{tx_hash}:{log_index}". Its presence makes
    redelivery of the same event a no-op.
    """

    kind: str
    pair_id: str
    block_number: int
    price: float
