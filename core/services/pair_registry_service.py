from __future__ import annotations

import logging
from typing import Any, Optional

from core.domain.entities.pair_entity import PairEntity
from core.domain.entities.token_entity import UNKNOWN_SYMBOL, TokenEntity
from core.ports.onchain_reader import OnChainReader
from core.repositories.pair_repository import PairRepository
from core.repositories.token_repository import TokenRepository


class PairRegistryService:
    """
    Idempotent lookup/creation of Token and Pair records.

    Behavior:
      - Addresses are normalized to lowercase before any lookup.
      - A stored record is returned unchanged; nothing is ever overwritten.
      - Creation goes through the repository's atomic insert-if-absent, so two
        concurrent first events for the same pair converge on one record.
      - Token metadata (decimals/symbol/name) is read from chain when a reader
        is configured; failures fall back to 18 decimals and "UNKNOWN".
    """

    def __init__(
        self,
        *,
        token_repository: TokenRepository,
        pair_repository: PairRepository,
        metadata_reader: Optional[OnChainReader] = None,
        default_decimals: int = 18,
        logger: logging.Logger | None = None,
    ) -> None:
        self._tokens = token_repository
        self._pairs = pair_repository
        self._reader = metadata_reader
        self._default_decimals = int(default_decimals)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def get_or_create_token(self, address: str) -> TokenEntity:
        token_id = str(address).strip().lower()
        existing = await self._tokens.get(token_id)
        if existing is not None:
            return existing

        token = TokenEntity(
            id=token_id,
            decimals=await self._read_metadata(token_id, "decimals", self._default_decimals),
            symbol=await self._read_metadata(token_id, "symbol", UNKNOWN_SYMBOL),
            name=await self._read_metadata(token_id, "name", UNKNOWN_SYMBOL),
        )
        stored = await self._tokens.insert_if_absent(token)
        self._logger.info("Token registered id=%s symbol=%s decimals=%s", stored.id, stored.symbol, stored.decimals)
        return stored

    async def get_or_create_pair(
        self,
        venue_address: str,
        token0_address: str,
        token1_address: str,
        block_timestamp: int,
    ) -> PairEntity:
        pair_id = str(venue_address).strip().lower()
        existing = await self._pairs.get(pair_id)
        if existing is not None:
            return existing

        token0 = await self.get_or_create_token(token0_address)
        token1 = await self.get_or_create_token(token1_address)

        pair = PairEntity(
            id=pair_id,
            token0_id=token0.id,
            token1_id=token1.id,
            created_timestamp=int(block_timestamp),
        )
        stored = await self._pairs.insert_if_absent(pair)
        self._logger.info(
            "Pair registered id=%s token0=%s token1=%s created=%s",
            stored.id,
            stored.token0_id,
            stored.token1_id,
            stored.created_timestamp,
        )
        return stored

    async def _read_metadata(self, token_id: str, method: str, default: Any) -> Any:
        if self._reader is None:
            return default
        try:
            value = await self._reader.call(token_id, method, (), "latest")
        except Exception as exc:
            self._logger.warning("Token %s() unavailable for %s, using %r: %s", method, token_id, default, exc)
            return default
        if value is None or value == "":
            return default
        return int(value) if method == "decimals" else str(value)
