from __future__ import annotations

import logging

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.pair_entity import PairEntity
from core.repositories.candle_repository import CandleRepository
from core.services.candle_key_service import CandleKeyService

MAX_BACKFILL_STEPS = 1000


class BackfillCandleGapsUseCase:
    """
    Materializes zero-volume candles between the last stored candle and a new bucket.

    Behavior:
      - Searches back from target - interval, never below the pair's creation
        bucket and at most `max_steps` buckets, for the most recent stored
        candle (the anchor).
      - Creates one empty candle (OHLC = anchor close, zero volume, zero
        trades) for every bucket strictly between the anchor and the target.
      - No anchor within bounds: nothing is written.
      - Each bucket uses create-if-absent, so re-running after a partial run
        neither duplicates nor overwrites candles.
    """

    def __init__(
        self,
        *,
        candle_repository: CandleRepository,
        max_steps: int = MAX_BACKFILL_STEPS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._candles = candle_repository
        self._max_steps = int(max_steps)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self, *, pair: PairEntity, interval: int, target_bucket: int) -> int:
        """
        Fill the gap before `target_bucket`.

        Returns:
            Number of empty candles created.
        """
        itv = int(interval)
        target = int(target_bucket)
        created_bucket = int(pair.created_timestamp) - (int(pair.created_timestamp) % itv)

        lower = max(created_bucket, target - self._max_steps * itv)
        if target - itv < lower:
            return 0

        anchor = await self._candles.get_latest_before(pair.id, itv, target, not_before=lower)
        if anchor is None:
            return 0

        carry = float(anchor.close)
        created = 0
        bucket = int(anchor.bucket_start) + itv
        while bucket < target:
            empty = CandleEntity(
                id=CandleKeyService.candle_id(pair_id=pair.id, interval=itv, bucket_start=bucket),
                pair_id=pair.id,
                interval=itv,
                bucket_start=bucket,
                open=carry,
                high=carry,
                low=carry,
                close=carry,
                volume_token0=0.0,
                volume_token1=0.0,
                trades=0,
            )
            if await self._candles.create_if_absent(empty):
                created += 1
            bucket += itv

        if created:
            self._logger.debug(
                "Backfilled %s empty candles pair=%s interval=%s (%s..%s) carry=%s",
                created,
                pair.id,
                itv,
                int(anchor.bucket_start) + itv,
                target - itv,
                carry,
            )
        return created
