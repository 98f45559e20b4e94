from __future__ import annotations

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from adapters.external.database.mongodb_client import now_ms
from core.domain.entities.candle_entity import CandleEntity
from core.repositories.candle_repository import CandleRepository


class CandleRepositoryMongoDB(CandleRepository):
    """
    MongoDB implementation for candle persistence.

    Uses a single collection for all pairs/intervals. `_id` is the composite
    id "{pair_id}-{interval}-{bucket_start}" and a unique index on
    (pair_id, interval, bucket_start) backs it up.
    """

    COLLECTION = "candles"

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Args:
            db: Motor database handle.
        """
        self._db = db

    async def ensure_indexes(self) -> None:
        """
        Ensure uniqueness by composite key and allow efficient range/latest queries.
        """
        col = self._db[self.COLLECTION]
        await col.create_index([("pair_id", 1), ("interval", 1), ("bucket_start", 1)], unique=True)
        await col.create_index([("pair_id", 1), ("interval", 1), ("bucket_start", -1)])

    async def get(self, pair_id: str, interval: int, bucket_start: int) -> Optional[CandleEntity]:
        col = self._db[self.COLLECTION]
        doc = await col.find_one(
            {"pair_id": pair_id, "interval": int(interval), "bucket_start": int(bucket_start)}
        )
        return CandleEntity.from_mongo(doc) if doc else None

    async def create_if_absent(self, candle: CandleEntity) -> bool:
        """
        Insert the candle only if its composite key is new.

        Adds created_at/updated_at on insert; an existing candle is untouched.
        """
        col = self._db[self.COLLECTION]
        ts = now_ms()
        payload = candle.to_mongo()
        payload.pop("_id")
        payload["created_at"] = ts
        payload["updated_at"] = ts
        try:
            res = await col.update_one({"_id": candle.id}, {"$setOnInsert": payload}, upsert=True)
        except DuplicateKeyError:
            return False
        return res.upserted_id is not None

    async def save(self, candle: CandleEntity) -> None:
        """
        Upsert a candle by composite key.

        - created_at on first insert
        - updated_at on every upsert
        """
        col = self._db[self.COLLECTION]
        ts = now_ms()
        payload: Dict[str, Any] = candle.to_mongo()
        payload.pop("_id")
        payload.pop("created_at", None)
        payload["updated_at"] = ts

        await col.update_one(
            {"_id": candle.id},
            {
                "$set": payload,
                "$setOnInsert": {"created_at": ts},
            },
            upsert=True,
        )

    async def get_latest_before(
        self,
        pair_id: str,
        interval: int,
        bucket_start: int,
        *,
        not_before: int,
    ) -> Optional[CandleEntity]:
        col = self._db[self.COLLECTION]
        doc = await col.find_one(
            {
                "pair_id": pair_id,
                "interval": int(interval),
                "bucket_start": {"$gte": int(not_before), "$lt": int(bucket_start)},
            },
            sort=[("bucket_start", -1)],
        )
        return CandleEntity.from_mongo(doc) if doc else None

    async def list_range(
        self,
        pair_id: str,
        interval: int,
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
    ) -> List[CandleEntity]:
        """
        Fetch one series in ascending bucket order.
        """
        col = self._db[self.COLLECTION]
        query: Dict[str, Any] = {"pair_id": pair_id, "interval": int(interval)}
        bounds: Dict[str, int] = {}
        if from_ts is not None:
            bounds["$gte"] = int(from_ts)
        if to_ts is not None:
            bounds["$lte"] = int(to_ts)
        if bounds:
            query["bucket_start"] = bounds

        docs = await col.find(query).sort("bucket_start", 1).to_list(length=None)
        entities = [CandleEntity.from_mongo(d) for d in docs]
        return [e for e in entities if e is not None]
