from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class EventBatchInDTO(BaseModel):
    """
    DTO for decoded events pushed by the host indexing runtime.

    Each item is a raw decoded log record; typed validation happens in the
    dispatcher so a malformed item is skipped without rejecting the batch.
    """

    events: List[Dict[str, Any]] = Field(..., description="Decoded event records in block order")

    @field_validator("events", mode="before")
    @classmethod
    def _wrap_single(cls, v: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        if isinstance(v, dict):
            return [v]
        return v


class EventStatusDTO(BaseModel):
    """
    Outcome of one dispatched event.
    """

    status: str = Field(..., description="applied | duplicate | ignored | malformed")
    event_key: Optional[str] = None
    kind: Optional[str] = None
    pair_id: Optional[str] = None
    price: Optional[float] = None


class EventBatchOutDTO(BaseModel):
    """
    DTO returned after every event of the batch was dispatched.
    """

    processed: int
    results: List[EventStatusDTO] = Field(default_factory=list)
