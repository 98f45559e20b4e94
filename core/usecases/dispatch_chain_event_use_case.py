from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from config.indexer_config import IndexerConfig
from core.domain.entities.fee_payment_entity import FeePaymentEntity
from core.domain.entities.pair_entity import PairEntity
from core.domain.entities.processed_event_entity import ProcessedEventEntity
from core.domain.entities.purchase_entity import PurchaseEntity
from core.domain.errors import MalformedEventError
from core.domain.events.chain_events import (
    ChainEvent,
    FeeTransferEvent,
    ListingFeeEvent,
    PurchaseEvent,
    SwapEvent,
    parse_chain_event,
)
from core.repositories.audit_repository import AuditRepository
from core.repositories.processed_event_repository import ProcessedEventRepository
from core.services.bucket_service import BucketService
from core.services.candle_key_service import CandleKeyService
from core.services.decimal_service import to_decimal
from core.services.pair_registry_service import PairRegistryService
from core.services.price_resolver_service import PriceResolverService
from core.usecases.apply_trade_use_case import ApplyTradeUseCase

APPLIED = "applied"
DUPLICATE = "duplicate"
IGNORED = "ignored"
MALFORMED = "malformed"


@dataclass(frozen=True)
class TradeIntent:
    """What one event contributes to every interval of its pair."""

    token0_address: str
    token1_address: str
    volume_token0: float
    volume_token1: float
    audit: Optional[Union[FeePaymentEntity, PurchaseEntity]] = None


@dataclass(frozen=True)
class DispatchResult:
    status: str
    event_key: Optional[str] = None
    kind: Optional[str] = None
    pair_id: Optional[str] = None
    price: Optional[float] = None


class DispatchChainEventUseCase:
    """
    Routes one decoded chain event to its handler and applies it to all intervals.

    Flow per event:
      1. validate the raw record (malformed -> logged, skipped, nothing written)
      2. skip if the (tx hash, log index) marker already exists
      3. drop fee transfers whose destination is not the treasury
      4. resolve the price once; PriceUnavailableError propagates before any write
      5. register the pair, then apply the trade to every configured interval
         (the treasury pair, or "fee-{token}" for fee transfers)
      6. write the audit record, then the processed marker

    Storage errors propagate; the marker is written last so redelivery retries
    the whole event. Events for the same pair are serialized by a per-pair lock.
    """

    def __init__(
        self,
        *,
        config: IndexerConfig,
        registry: PairRegistryService,
        price_resolver: PriceResolverService,
        apply_trade_use_case: ApplyTradeUseCase,
        processed_event_repository: ProcessedEventRepository,
        audit_repository: Optional[AuditRepository] = None,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._prices = price_resolver
        self._apply_trade = apply_trade_use_case
        self._processed = processed_event_repository
        self._audit = audit_repository
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._locks: Dict[str, asyncio.Lock] = {}

        self._handlers: Dict[type, Callable[[Any, float], Any]] = {
            SwapEvent: self._handle_swap,
            PurchaseEvent: self._handle_purchase,
            ListingFeeEvent: self._handle_listing_fee,
            FeeTransferEvent: self._handle_fee_transfer,
        }

    def pair_id_for(self, raw: Union[Dict[str, Any], ChainEvent]) -> str:
        """
        Pair an event (raw or parsed) is aggregated into; used for routing.
        """
        if isinstance(raw, dict):
            if raw.get("kind") == "fee_transfer" and raw.get("address"):
                return CandleKeyService.fee_pair_id(str(raw["address"]))
            return self._config.treasury_address
        if isinstance(raw, FeeTransferEvent):
            return CandleKeyService.fee_pair_id(raw.address)
        return self._config.treasury_address

    async def execute(self, raw: Union[Dict[str, Any], ChainEvent]) -> DispatchResult:
        if isinstance(raw, dict):
            try:
                event = parse_chain_event(raw)
            except MalformedEventError as exc:
                self._logger.warning("Skipping malformed event key=%s: %s", exc.event_key, exc)
                return DispatchResult(status=MALFORMED, event_key=exc.event_key)
        else:
            event = raw

        async with self._lock_for(self.pair_id_for(event)):
            return await self._process(event)

    def _lock_for(self, pair_id: str) -> asyncio.Lock:
        lock = self._locks.get(pair_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[pair_id] = lock
        return lock

    async def _process(self, event: ChainEvent) -> DispatchResult:
        key = event.event_key

        if await self._processed.is_processed(key):
            self._logger.info("Event already processed key=%s kind=%s", key, event.kind)
            return DispatchResult(status=DUPLICATE, event_key=key, kind=event.kind)

        if isinstance(event, FeeTransferEvent) and event.args.to_address != self._config.treasury_address:
            self._logger.debug("Ignoring transfer not bound to treasury key=%s to=%s", key, event.args.to_address)
            return DispatchResult(status=IGNORED, event_key=key, kind=event.kind)

        price = await self._prices.resolve_price(event)

        handler = self._handlers[type(event)]
        intent: TradeIntent = await handler(event, price)

        pair = await self._registry.get_or_create_pair(
            self.pair_id_for(event),
            intent.token0_address,
            intent.token1_address,
            event.block_timestamp,
        )

        await self._apply_all_intervals(pair=pair, event=event, price=price, intent=intent)

        if self._audit is not None and intent.audit is not None:
            if isinstance(intent.audit, PurchaseEntity):
                await self._audit.record_purchase(intent.audit)
            else:
                await self._audit.record_fee_payment(intent.audit)

        await self._processed.mark_processed(
            ProcessedEventEntity(
                id=key,
                kind=event.kind,
                pair_id=pair.id,
                block_number=event.block_number,
                price=price,
            )
        )

        self._logger.info(
            "Applied %s key=%s block=%s price=%.8f vol0=%s vol1=%s",
            event.kind,
            key,
            event.block_number,
            price,
            intent.volume_token0,
            intent.volume_token1,
        )
        return DispatchResult(status=APPLIED, event_key=key, kind=event.kind, pair_id=pair.id, price=price)

    async def _apply_all_intervals(
        self,
        *,
        pair: PairEntity,
        event: ChainEvent,
        price: float,
        intent: TradeIntent,
    ) -> None:
        now = int(self._clock())
        for interval in self._config.intervals:
            bucket = BucketService.bucket_start(
                event.block_timestamp,
                interval,
                now=now,
                future_tolerance_s=self._config.future_tolerance_s,
            )
            await self._apply_trade.execute(
                pair=pair,
                interval=interval,
                bucket_start=bucket,
                price=price,
                volume_token0=intent.volume_token0,
                volume_token1=intent.volume_token1,
                event_cursor=event.cursor,
            )

    # --- Handlers ---

    async def _handle_swap(self, event: SwapEvent, price: float) -> TradeIntent:
        decimals = self._config.token_decimals
        return TradeIntent(
            token0_address=event.args.collateral_token or self._config.collateral_address,
            token1_address=self._config.lmkt_address,
            volume_token0=to_decimal(event.args.collateral_amount, decimals),
            volume_token1=to_decimal(event.args.lmkt_amount, decimals),
        )

    async def _handle_purchase(self, event: PurchaseEvent, price: float) -> TradeIntent:
        lmkt_amount = to_decimal(event.args.lmkt_amount, self._config.token_decimals)
        return TradeIntent(
            token0_address=self._config.collateral_address,
            token1_address=self._config.lmkt_address,
            volume_token0=lmkt_amount * price,
            volume_token1=lmkt_amount,
            audit=PurchaseEntity(
                id=event.event_key,
                listing_id=event.args.listing_id,
                buyer=event.args.buyer,
                seller=event.args.seller,
                token=self._config.lmkt_address,
                lmkt_amount=lmkt_amount,
                lmkt_amount_raw=str(event.args.lmkt_amount),
                price=price,
                block_number=event.block_number,
                timestamp=event.block_timestamp,
                transaction_hash=event.transaction_hash,
            ),
        )

    async def _handle_listing_fee(self, event: ListingFeeEvent, price: float) -> TradeIntent:
        fee = to_decimal(event.args.fee_paid, self._config.token_decimals)
        return TradeIntent(
            token0_address=self._config.collateral_address,
            token1_address=self._config.lmkt_address,
            volume_token0=fee,
            volume_token1=0.0,
            audit=FeePaymentEntity(
                id=event.event_key,
                source=f"listing_{event.action}",
                payer=event.args.payer,
                token=event.args.fee_token or self._config.collateral_address,
                amount=fee,
                amount_raw=str(event.args.fee_paid),
                block_number=event.block_number,
                timestamp=event.block_timestamp,
                transaction_hash=event.transaction_hash,
            ),
        )

    async def _handle_fee_transfer(self, event: FeeTransferEvent, price: float) -> TradeIntent:
        token = await self._registry.get_or_create_token(event.address)
        amount = to_decimal(event.args.value, token.decimals)
        return TradeIntent(
            token0_address=token.id,
            token1_address=self._config.treasury_address,
            volume_token0=amount,
            volume_token1=0.0,
            audit=FeePaymentEntity(
                id=event.event_key,
                source="fee_transfer",
                payer=event.args.from_address,
                token=token.id,
                amount=amount,
                amount_raw=str(event.args.value),
                block_number=event.block_number,
                timestamp=event.block_timestamp,
                transaction_hash=event.transaction_hash,
            ),
        )
