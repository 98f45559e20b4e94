from __future__ import annotations

from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from config.settings import settings


def get_mongo_client() -> AsyncIOMotorClient:
    """
    Build the Motor client from settings.MONGODB_URL.
    """
    return AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)


def now_ms() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)
