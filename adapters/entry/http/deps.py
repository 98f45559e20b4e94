from __future__ import annotations

from fastapi import HTTPException, Request

from workers.indexer_supervisor import IndexerSupervisor


def get_supervisor(request: Request) -> IndexerSupervisor:
    supervisor = getattr(request.app.state, "supervisor", None)
    if supervisor is None:
        raise HTTPException(status_code=503, detail="indexer not started")
    return supervisor
