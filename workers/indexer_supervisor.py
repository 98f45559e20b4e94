from __future__ import annotations

import contextlib
import logging
import zlib
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from adapters.external.database.audit_repository_mongodb import AuditRepositoryMongoDB
from adapters.external.database.candle_repository_mongodb import CandleRepositoryMongoDB
from adapters.external.database.mongodb_client import get_mongo_client
from adapters.external.database.pair_repository_mongodb import PairRepositoryMongoDB
from adapters.external.database.processed_event_repository_mongodb import ProcessedEventRepositoryMongoDB
from adapters.external.database.token_repository_mongodb import TokenRepositoryMongoDB
from adapters.external.memory.memory_store import (
    AuditRepositoryMemory,
    CandleRepositoryMemory,
    PairRepositoryMemory,
    ProcessedEventRepositoryMemory,
    TokenRepositoryMemory,
)
from adapters.external.rpc.contract_reader_rpc import ContractReaderRpc
from adapters.external.rpc.json_rpc_http_client import JsonRpcHttpClient
from config.indexer_config import IndexerConfig
from config.settings import settings
from core.repositories.audit_repository import AuditRepository
from core.repositories.candle_repository import CandleRepository
from core.repositories.pair_repository import PairRepository
from core.repositories.processed_event_repository import ProcessedEventRepository
from core.repositories.token_repository import TokenRepository
from core.services.pair_registry_service import PairRegistryService
from core.services.price_resolver_service import PriceResolverService
from core.usecases.apply_trade_use_case import ApplyTradeUseCase
from core.usecases.backfill_candle_gaps_use_case import BackfillCandleGapsUseCase
from core.usecases.dispatch_chain_event_use_case import DispatchChainEventUseCase, DispatchResult
from workers.event_ingestion_worker import EventIngestionWorker


class IndexerSupervisor:
    """
    High-level supervisor for api-candle-indexer.

    Responsibilities:
    - Build IndexerConfig once from settings.
    - Connect to MongoDB and ensure indexes (or use in-memory stores).
    - Wire RPC reader, registry, price resolver, candle engine and dispatcher.
    - Run a pool of partitioned ingestion workers: one pair always maps to the
      same worker, so a pair is processed in order by a single writer while
      distinct pairs proceed concurrently.
    """

    def __init__(self, *, config: Optional[IndexerConfig] = None) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)
        self._config = config
        self._mongo_client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None

        self._rpc_reader: ContractReaderRpc | None = None
        self._dispatcher: DispatchChainEventUseCase | None = None
        self._workers: List[EventIngestionWorker] = []

    @property
    def db(self) -> AsyncIOMotorDatabase | None:
        """
        Expose the database handle after start() (None for the memory backend).
        """
        return self._db

    @property
    def dispatcher(self) -> DispatchChainEventUseCase | None:
        return self._dispatcher

    async def start(self) -> None:
        """
        Initialize storage, on-chain reader and dispatcher, then start workers.
        """
        config = self._config or IndexerConfig.from_settings(settings)
        self._config = config

        tokens, pairs, candles, processed, audit = await self._build_repositories()

        self._rpc_reader = ContractReaderRpc(
            client=JsonRpcHttpClient(endpoint=settings.RPC_URL, timeout_s=settings.RPC_TIMEOUT_S)
        )

        registry = PairRegistryService(
            token_repository=tokens,
            pair_repository=pairs,
            metadata_reader=self._rpc_reader,
            default_decimals=config.token_decimals,
        )
        price_resolver = PriceResolverService(
            reader=self._rpc_reader,
            treasury_address=config.treasury_address,
            retry_policy=config.retry_policy,
            value_decimals=config.token_decimals,
        )
        backfill_uc = BackfillCandleGapsUseCase(
            candle_repository=candles,
            max_steps=config.backfill_max_steps,
        )
        apply_trade_uc = ApplyTradeUseCase(candle_repository=candles, backfill_use_case=backfill_uc)

        self._dispatcher = DispatchChainEventUseCase(
            config=config,
            registry=registry,
            price_resolver=price_resolver,
            apply_trade_use_case=apply_trade_uc,
            processed_event_repository=processed,
            audit_repository=audit,
        )

        worker_count = max(1, int(settings.INGESTION_WORKERS))
        for i in range(worker_count):
            worker = EventIngestionWorker(
                name=str(i),
                dispatcher=self._dispatcher,
            )
            worker.start()
            self._workers.append(worker)

        self._logger.info(
            "Candle indexer started. backend=%s treasury=%s intervals=%s workers=%s",
            settings.STORE_BACKEND,
            config.treasury_address,
            list(config.intervals),
            worker_count,
        )

    async def stop(self) -> None:
        """
        Stop workers, close the RPC client and the MongoDB connection.
        """
        for w in self._workers:
            with contextlib.suppress(Exception):
                await w.stop()
        self._workers = []

        if self._rpc_reader is not None:
            with contextlib.suppress(Exception):
                await self._rpc_reader.aclose()
            self._rpc_reader = None

        if self._mongo_client:
            self._mongo_client.close()
            self._mongo_client = None

    async def submit(self, raw: Dict[str, Any]) -> DispatchResult:
        """
        Dispatch one decoded event on the worker owning its pair.

        Raises:
            RuntimeError: when the supervisor is not started.
            Any dispatch failure for this event (e.g. PriceUnavailableError).
        """
        if not self._workers or self._dispatcher is None:
            raise RuntimeError("IndexerSupervisor is not started")
        return await self._worker_for(self._dispatcher.pair_id_for(raw)).submit(raw)

    def _worker_for(self, pair_id: str) -> EventIngestionWorker:
        idx = zlib.crc32(pair_id.encode("utf-8")) % len(self._workers)
        return self._workers[idx]

    async def _build_repositories(
        self,
    ) -> tuple[TokenRepository, PairRepository, CandleRepository, ProcessedEventRepository, AuditRepository]:
        if settings.STORE_BACKEND == "memory":
            self._logger.warning("Using in-memory storage; candles are lost on restart.")
            return (
                TokenRepositoryMemory(),
                PairRepositoryMemory(),
                CandleRepositoryMemory(),
                ProcessedEventRepositoryMemory(),
                AuditRepositoryMemory(),
            )

        self._mongo_client = get_mongo_client()
        self._db = self._mongo_client[settings.MONGODB_DB_NAME]

        candle_repo = CandleRepositoryMongoDB(self._db)
        processed_repo = ProcessedEventRepositoryMongoDB(self._db)
        audit_repo = AuditRepositoryMongoDB(self._db)

        await candle_repo.ensure_indexes()
        await processed_repo.ensure_indexes()
        await audit_repo.ensure_indexes()

        return (
            TokenRepositoryMongoDB(self._db),
            PairRepositoryMongoDB(self._db),
            candle_repo,
            processed_repo,
            audit_repo,
        )
