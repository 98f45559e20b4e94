from __future__ import annotations

from abc import ABC, abstractmethod

from core.domain.entities.processed_event_entity import ProcessedEventEntity


class ProcessedEventRepository(ABC):
    """Repository interface for processed-event markers keyed by (tx hash, log index)."""

    @abstractmethod
    async def is_processed(self, event_key: str) -> bool: ...

    @abstractmethod
    async def mark_processed(self, marker: ProcessedEventEntity) -> None: ...
