import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adapters.entry.http.events_router import router as events_router
from config.settings import settings
from workers.indexer_supervisor import IndexerSupervisor


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


supervisor = IndexerSupervisor()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logging.getLogger(__name__).info("Starting api-candle-indexer (lifespan startup)...")

    await supervisor.start()
    app.state.supervisor = supervisor
    app.state.db = supervisor.db

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down api-candle-indexer (lifespan shutdown)...")
        await supervisor.stop()


app = FastAPI(title="api-candle-indexer", version="0.1.0", lifespan=lifespan)
app.include_router(events_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
