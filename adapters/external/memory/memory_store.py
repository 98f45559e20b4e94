from __future__ import annotations

import asyncio
import time
from typing import Dict, List, Optional, Tuple

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.fee_payment_entity import FeePaymentEntity
from core.domain.entities.pair_entity import PairEntity
from core.domain.entities.processed_event_entity import ProcessedEventEntity
from core.domain.entities.purchase_entity import PurchaseEntity
from core.domain.entities.token_entity import TokenEntity
from core.repositories.audit_repository import AuditRepository
from core.repositories.candle_repository import CandleRepository
from core.repositories.pair_repository import PairRepository
from core.repositories.processed_event_repository import ProcessedEventRepository
from core.repositories.token_repository import TokenRepository


def _now_ms() -> int:
    return int(time.time() * 1000)


class TokenRepositoryMemory(TokenRepository):
    """
    In-process token store for tests and STORE_BACKEND=memory.

    Entities are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._items: Dict[str, TokenEntity] = {}
        self._lock = asyncio.Lock()

    async def get(self, token_id: str) -> Optional[TokenEntity]:
        item = self._items.get(token_id)
        return item.model_copy() if item is not None else None

    async def insert_if_absent(self, token: TokenEntity) -> TokenEntity:
        async with self._lock:
            if token.id not in self._items:
                stored = token.model_copy()
                stored.created_at = _now_ms()
                self._items[token.id] = stored
            return self._items[token.id].model_copy()


class PairRepositoryMemory(PairRepository):
    """In-process pair store with atomic insert-if-absent."""

    def __init__(self) -> None:
        self._items: Dict[str, PairEntity] = {}
        self._lock = asyncio.Lock()

    async def get(self, pair_id: str) -> Optional[PairEntity]:
        item = self._items.get(pair_id)
        return item.model_copy() if item is not None else None

    async def insert_if_absent(self, pair: PairEntity) -> PairEntity:
        async with self._lock:
            if pair.id not in self._items:
                stored = pair.model_copy()
                stored.created_at = _now_ms()
                self._items[pair.id] = stored
            return self._items[pair.id].model_copy()


class CandleRepositoryMemory(CandleRepository):
    """
    In-process candle store keyed by (pair_id, interval, bucket_start).
    """

    def __init__(self) -> None:
        self._items: Dict[Tuple[str, int, int], CandleEntity] = {}
        self._lock = asyncio.Lock()
        self.save_count = 0

    @staticmethod
    def _key(candle: CandleEntity) -> Tuple[str, int, int]:
        return (candle.pair_id, int(candle.interval), int(candle.bucket_start))

    async def get(self, pair_id: str, interval: int, bucket_start: int) -> Optional[CandleEntity]:
        item = self._items.get((pair_id, int(interval), int(bucket_start)))
        return item.model_copy() if item is not None else None

    async def create_if_absent(self, candle: CandleEntity) -> bool:
        async with self._lock:
            key = self._key(candle)
            if key in self._items:
                return False
            stored = candle.model_copy()
            stored.created_at = stored.updated_at = _now_ms()
            self._items[key] = stored
            self.save_count += 1
            return True

    async def save(self, candle: CandleEntity) -> None:
        async with self._lock:
            stored = candle.model_copy()
            stored.updated_at = _now_ms()
            self._items[self._key(candle)] = stored
            self.save_count += 1

    async def get_latest_before(
        self,
        pair_id: str,
        interval: int,
        bucket_start: int,
        *,
        not_before: int,
    ) -> Optional[CandleEntity]:
        best: Optional[CandleEntity] = None
        for (pid, itv, bucket), candle in self._items.items():
            if pid != pair_id or itv != int(interval):
                continue
            if int(not_before) <= bucket < int(bucket_start):
                if best is None or bucket > best.bucket_start:
                    best = candle
        return best.model_copy() if best is not None else None

    async def list_range(
        self,
        pair_id: str,
        interval: int,
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
    ) -> List[CandleEntity]:
        out = [
            c.model_copy()
            for (pid, itv, bucket), c in self._items.items()
            if pid == pair_id
            and itv == int(interval)
            and (from_ts is None or bucket >= int(from_ts))
            and (to_ts is None or bucket <= int(to_ts))
        ]
        out.sort(key=lambda c: c.bucket_start)
        return out

    def all(self) -> List[CandleEntity]:
        return [c.model_copy() for c in self._items.values()]


class ProcessedEventRepositoryMemory(ProcessedEventRepository):
    def __init__(self) -> None:
        self._items: Dict[str, ProcessedEventEntity] = {}

    async def is_processed(self, event_key: str) -> bool:
        return event_key in self._items

    async def mark_processed(self, marker: ProcessedEventEntity) -> None:
        stored = marker.model_copy()
        stored.created_at = _now_ms()
        self._items.setdefault(marker.id, stored)


class AuditRepositoryMemory(AuditRepository):
    def __init__(self) -> None:
        self.fee_payments: Dict[str, FeePaymentEntity] = {}
        self.purchases: Dict[str, PurchaseEntity] = {}

    async def record_fee_payment(self, fee: FeePaymentEntity) -> None:
        self.fee_payments.setdefault(fee.id, fee.model_copy())

    async def record_purchase(self, purchase: PurchaseEntity) -> None:
        self.purchases.setdefault(purchase.id, purchase.model_copy())
