from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorDatabase

from adapters.external.database.mongodb_client import now_ms
from core.domain.entities.base_entity import MongoEntity
from core.domain.entities.fee_payment_entity import FeePaymentEntity
from core.domain.entities.purchase_entity import PurchaseEntity
from core.repositories.audit_repository import AuditRepository


class AuditRepositoryMongoDB(AuditRepository):
    """
    MongoDB repository for fee payments and purchases.

    Both collections are insert-once by event key.
    """

    FEE_COLLECTION = "fee_payments"
    PURCHASE_COLLECTION = "purchases"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def ensure_indexes(self) -> None:
        await self._db[self.FEE_COLLECTION].create_index([("token", 1), ("timestamp", -1)])
        await self._db[self.PURCHASE_COLLECTION].create_index([("buyer", 1), ("timestamp", -1)])

    async def record_fee_payment(self, fee: FeePaymentEntity) -> None:
        await self._insert_once(self.FEE_COLLECTION, fee)

    async def record_purchase(self, purchase: PurchaseEntity) -> None:
        await self._insert_once(self.PURCHASE_COLLECTION, purchase)

    async def _insert_once(self, collection: str, entity: MongoEntity) -> None:
        payload = entity.to_mongo()
        payload.pop("_id")
        payload["created_at"] = now_ms()
        await self._db[collection].update_one({"_id": entity.id}, {"$setOnInsert": payload}, upsert=True)
