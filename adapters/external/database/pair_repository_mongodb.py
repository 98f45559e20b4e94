from __future__ import annotations

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from adapters.external.database.mongodb_client import now_ms
from core.domain.entities.pair_entity import PairEntity
from core.repositories.pair_repository import PairRepository


class PairRepositoryMongoDB(PairRepository):
    """
    MongoDB repository for pairs, keyed by `_id` == lowercase venue address.

    Token references and created_timestamp only ever come from `$setOnInsert`.
    """

    COLLECTION = "pairs"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get(self, pair_id: str) -> Optional[PairEntity]:
        col = self._db[self.COLLECTION]
        doc = await col.find_one({"_id": str(pair_id).lower()})
        return PairEntity.from_mongo(doc) if doc else None

    async def insert_if_absent(self, pair: PairEntity) -> PairEntity:
        col = self._db[self.COLLECTION]
        payload = pair.to_mongo()
        payload.pop("_id")
        payload["created_at"] = now_ms()
        try:
            await col.update_one({"_id": pair.id}, {"$setOnInsert": payload}, upsert=True)
        except DuplicateKeyError:
            pass
        stored = await self.get(pair.id)
        if stored is None:
            raise RuntimeError(f"pair {pair.id} missing after insert")
        return stored
