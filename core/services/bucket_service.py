from __future__ import annotations

import time
from typing import Optional

FUTURE_TOLERANCE_S = 300


class BucketService:
    """
    Aligns timestamps to candle buckets.

    Rules:
    - bucket = ts - (ts % interval)
    - a bucket further than `future_tolerance_s` ahead of now is clamped to
      now's own bucket (malformed or adversarial block timestamps)
    """

    @staticmethod
    def bucket_start(
        timestamp: int,
        interval: int,
        *,
        now: Optional[int] = None,
        future_tolerance_s: int = FUTURE_TOLERANCE_S,
    ) -> int:
        ts = int(timestamp)
        itv = int(interval)
        bucket = ts - (ts % itv)

        now_s = int(time.time()) if now is None else int(now)
        if bucket > now_s + int(future_tolerance_s):
            return now_s - (now_s % itv)
        return bucket
