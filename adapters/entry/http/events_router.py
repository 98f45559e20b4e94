from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import PyMongoError

from core.domain.errors import IndexerError
from workers.indexer_supervisor import IndexerSupervisor

from .deps import get_supervisor
from .dtos.event_dtos import EventBatchInDTO, EventBatchOutDTO, EventStatusDTO

router = APIRouter(prefix="/events", tags=["events"])

logger = logging.getLogger(__name__)


@router.post("", response_model=EventBatchOutDTO)
async def ingest_events(
    dto: EventBatchInDTO,
    supervisor: IndexerSupervisor = Depends(get_supervisor),
) -> EventBatchOutDTO:
    """
    Dispatch decoded chain events in order and report each outcome.

    The first event that fails (price unavailable, storage down) stops the
    batch and the response is 503 with the statuses of the events before it;
    the host redelivers from that event. Events already applied come back as
    "duplicate" on redelivery.
    """
    results: list[EventStatusDTO] = []
    for raw in dto.events:
        try:
            result = await supervisor.submit(raw)
        except (IndexerError, PyMongoError) as exc:
            logger.warning("Event batch stopped at index %s: %s", len(results), exc)
            raise HTTPException(
                status_code=503,
                detail={
                    "error": str(exc),
                    "failed_index": len(results),
                    "results": [r.model_dump() for r in results],
                },
            ) from exc
        results.append(EventStatusDTO(**asdict(result)))
    return EventBatchOutDTO(processed=len(results), results=results)
