from __future__ import annotations

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from adapters.external.database.mongodb_client import now_ms
from core.domain.entities.token_entity import TokenEntity
from core.repositories.token_repository import TokenRepository


class TokenRepositoryMongoDB(TokenRepository):
    """
    MongoDB repository for tokens, keyed by `_id` == lowercase address.
    """

    COLLECTION = "tokens"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get(self, token_id: str) -> Optional[TokenEntity]:
        col = self._db[self.COLLECTION]
        doc = await col.find_one({"_id": str(token_id).lower()})
        return TokenEntity.from_mongo(doc) if doc else None

    async def insert_if_absent(self, token: TokenEntity) -> TokenEntity:
        """
        Insert with `$setOnInsert` so an existing token is never modified.
        """
        col = self._db[self.COLLECTION]
        payload = token.to_mongo()
        payload.pop("_id")
        payload["created_at"] = now_ms()
        try:
            await col.update_one({"_id": token.id}, {"$setOnInsert": payload}, upsert=True)
        except DuplicateKeyError:
            # concurrent upsert on the same _id; the other writer won
            pass
        stored = await self.get(token.id)
        return stored or token
