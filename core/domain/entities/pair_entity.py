from __future__ import annotations

from core.domain.entities.base_entity import MongoEntity


class PairEntity(MongoEntity):
    """
    The trading venue whose activity is aggregated into candles.

    `id` is the lowercase venue (treasury) address, with token0 the collateral
    side and token1 the LMKT side. Fee flows into the treasury live in
    separate "fee-{token}" pairs whose token0 is the transferred token and
    token1 the treasury. Token references and `created_timestamp`
    (block time of the first event) are immutable once stored.
    """

    token0_id: str
    token1_id: str
    created_timestamp: int
