from __future__ import annotations


class CandleKeyService:
    """
    Builds canonical identifiers for candles and processed events.

    Rules:
    - Candle id: "{pair_id}-{interval}-{bucket_start}" (pair id lowercased)
    - Event key: "{transaction_hash}:{log_index}" (hash lowercased)
    - Fee pair id: "fee-{token_address}" (address lowercased)
    """

    FEE_PAIR_PREFIX = "fee-"

    @staticmethod
    def candle_id(*, pair_id: str, interval: int, bucket_start: int) -> str:
        pair = (pair_id or "").strip().lower()
        return f"{pair}-{int(interval)}-{int(bucket_start)}"

    @staticmethod
    def event_key(*, transaction_hash: str, log_index: int) -> str:
        tx = (transaction_hash or "").strip().lower()
        return f"{tx}:{int(log_index)}"

    @staticmethod
    def fee_pair_id(token_address: str) -> str:
        token = (token_address or "").strip().lower()
        return f"{CandleKeyService.FEE_PAIR_PREFIX}{token}"
