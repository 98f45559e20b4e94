from __future__ import annotations

import logging
from typing import Optional, Tuple

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.pair_entity import PairEntity
from core.repositories.candle_repository import CandleRepository
from core.services.candle_key_service import CandleKeyService
from core.usecases.backfill_candle_gaps_use_case import BackfillCandleGapsUseCase


class ApplyTradeUseCase:
    """
    Merges one price/volume observation into the candle of (pair, interval, bucket).

    Behavior:
      - New bucket: gaps before it are backfilled first, then the candle opens
        at the previous bucket's close (or at `price` for the first candle of
        the series). high/low span both open and price.
      - Existing bucket: close moves to `price`, high/low widen, volumes add.
      - trades increments only when this update contributes strictly positive
        volume; a price-only update moves close/high/low and nothing else.
      - When `event_cursor` (block_number, log_index) is given, an update that
        is not strictly after the candle's last applied event is skipped.
    """

    def __init__(
        self,
        *,
        candle_repository: CandleRepository,
        backfill_use_case: BackfillCandleGapsUseCase,
        logger: logging.Logger | None = None,
    ) -> None:
        self._candles = candle_repository
        self._backfill = backfill_use_case
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        *,
        pair: PairEntity,
        interval: int,
        bucket_start: int,
        price: float,
        volume_token0: float,
        volume_token1: float,
        event_cursor: Optional[Tuple[int, int]] = None,
    ) -> CandleEntity:
        itv = int(interval)
        bucket = int(bucket_start)
        price = float(price)
        vol0 = float(volume_token0)
        vol1 = float(volume_token1)
        counts_as_trade = vol0 > 0 or vol1 > 0

        candle = await self._candles.get(pair.id, itv, bucket)

        if candle is None:
            await self._backfill.execute(pair=pair, interval=itv, target_bucket=bucket)

            previous = await self._candles.get(pair.id, itv, bucket - itv)
            open_price = float(previous.close) if previous is not None else price

            candle = CandleEntity(
                id=CandleKeyService.candle_id(pair_id=pair.id, interval=itv, bucket_start=bucket),
                pair_id=pair.id,
                interval=itv,
                bucket_start=bucket,
                open=open_price,
                high=max(open_price, price),
                low=min(open_price, price),
                close=price,
                volume_token0=vol0,
                volume_token1=vol1,
                trades=1 if counts_as_trade else 0,
            )
            self._set_cursor(candle, event_cursor)

            if await self._candles.create_if_absent(candle):
                return candle

            # Lost a create race; merge into the stored candle instead.
            candle = await self._candles.get(pair.id, itv, bucket)
            if candle is None:
                raise RuntimeError(f"candle {pair.id}-{itv}-{bucket} vanished after create conflict")

        last = candle.last_event
        if event_cursor is not None and last is not None and tuple(event_cursor) <= last:
            self._logger.info(
                "Skipping already-applied update candle=%s cursor=%s last=%s",
                candle.id,
                event_cursor,
                last,
            )
            return candle

        candle.close = price
        candle.high = max(float(candle.high), price)
        candle.low = min(float(candle.low), price)
        candle.volume_token0 = float(candle.volume_token0) + vol0
        candle.volume_token1 = float(candle.volume_token1) + vol1
        if counts_as_trade:
            candle.trades = int(candle.trades) + 1
        self._set_cursor(candle, event_cursor)

        await self._candles.save(candle)
        return candle

    @staticmethod
    def _set_cursor(candle: CandleEntity, event_cursor: Optional[Tuple[int, int]]) -> None:
        if event_cursor is None:
            return
        candle.last_block = int(event_cursor[0])
        candle.last_log_index = int(event_cursor[1])
