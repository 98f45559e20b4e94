from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorDatabase

from adapters.external.database.mongodb_client import now_ms
from core.domain.entities.processed_event_entity import ProcessedEventEntity
from core.repositories.processed_event_repository import ProcessedEventRepository


class ProcessedEventRepositoryMongoDB(ProcessedEventRepository):
    """
    MongoDB repository for processed-event markers (`_id` == "{tx_hash}:{log_index}").
    """

    COLLECTION = "processed_events"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def ensure_indexes(self) -> None:
        col = self._db[self.COLLECTION]
        await col.create_index([("pair_id", 1), ("block_number", -1)])

    async def is_processed(self, event_key: str) -> bool:
        col = self._db[self.COLLECTION]
        return await col.count_documents({"_id": event_key}, limit=1) > 0

    async def mark_processed(self, marker: ProcessedEventEntity) -> None:
        col = self._db[self.COLLECTION]
        payload = marker.to_mongo()
        payload.pop("_id")
        payload["created_at"] = now_ms()
        await col.update_one({"_id": marker.id}, {"$setOnInsert": payload}, upsert=True)
