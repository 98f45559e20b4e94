# core/domain/entities/base_entity.py
from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict

E = TypeVar("E", bound="MongoEntity")


class MongoEntity(BaseModel):
    """
    Base entity for indexer documents.

    - `id` is the natural key (token/pair address, candle composite id, event key)
      and maps to Mongo's `_id`, so create-if-absent is a single upsert on `_id`.
    - Carries audit timestamps (ms) set by the repositories.
    - Accepts extra fields to avoid breaking on forward-compatible schema changes.
    """

    id: str
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = ConfigDict(
        extra="allow",
        validate_assignment=False,
    )

    @classmethod
    def from_mongo(cls: Type[E], doc: Optional[dict[str, Any]]) -> Optional[E]:
        """
        Convert a MongoDB document into a strongly-typed entity.

        Returns:
            An entity instance or None if doc is falsy.
        """
        if not doc:
            return None
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_mongo(self) -> dict[str, Any]:
        """
        Convert this entity into a MongoDB document dict (`id` -> `_id`).
        """
        data = self.model_dump(mode="python", exclude_none=True)
        data["_id"] = data.pop("id")
        return data
