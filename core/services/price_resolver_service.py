from __future__ import annotations

import asyncio
import logging
from typing import Optional

from core.domain.errors import PriceUnavailableError
from core.domain.events.chain_events import ChainEvent, SwapEvent
from core.ports.onchain_reader import CIRCULATING_SUPPLY, TOTAL_COLLATERAL_VALUE, BlockTag, OnChainReader
from core.services.decimal_service import to_decimal
from core.services.retry_policy import RetryPolicy, SleepFn, retry


class PriceResolverService:
    """
    Derives the LMKT price (collateral value per circulating token) for an event.

    Strategies:
      - embedded: swaps carry totalCollateral and circulatingSupply in the log.
      - on-chain: purchases, listing fees and fee transfers read the same two
        values from the treasury pinned to the event's block, under a bounded
        retry policy.

    A zero or missing denominator yields price 0.0 (valid state). Exhausted
    retries raise PriceUnavailableError instead of defaulting to zero.
    """

    def __init__(
        self,
        *,
        reader: Optional[OnChainReader],
        treasury_address: str,
        retry_policy: RetryPolicy | None = None,
        value_decimals: int = 18,
        sleep: SleepFn = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._reader = reader
        self._treasury = str(treasury_address).strip().lower()
        self._policy = retry_policy or RetryPolicy()
        self._decimals = int(value_decimals)
        self._sleep = sleep
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def embedded_price(self, total_collateral: Optional[int], circulating_supply: Optional[int]) -> float:
        if not total_collateral or not circulating_supply:
            return 0.0
        supply = to_decimal(circulating_supply, self._decimals)
        if supply == 0:
            return 0.0
        return to_decimal(total_collateral, self._decimals) / supply

    async def onchain_price(self, *, block_tag: BlockTag, context: str = "price") -> float:
        """
        Read collateral value and circulating supply at `block_tag`.

        Raises:
            PriceUnavailableError: all attempts failed; the last error is chained.
        """
        if self._reader is None:
            raise PriceUnavailableError(f"{context}: no on-chain reader configured", attempts=0)

        reader = self._reader

        async def read_both() -> float:
            total = await reader.call(self._treasury, TOTAL_COLLATERAL_VALUE, (), block_tag)
            supply = await reader.call(self._treasury, CIRCULATING_SUPPLY, (), block_tag)
            return self.embedded_price(int(total), int(supply))

        try:
            price = await retry(
                read_both,
                self._policy,
                operation_name=f"{context} treasury read @ {block_tag}",
                logger=self._logger,
                sleep=self._sleep,
            )
        except Exception as exc:
            raise PriceUnavailableError(
                f"{context}: could not read treasury state at block {block_tag}: {exc}",
                attempts=self._policy.max_attempts,
            ) from exc

        self._logger.debug("%s on-chain price=%.8f block=%s", context, price, block_tag)
        return price

    async def resolve_price(self, event: ChainEvent) -> float:
        if isinstance(event, SwapEvent):
            price = self.embedded_price(event.args.total_collateral, event.args.circulating_supply)
            if price == 0.0:
                self._logger.warning(
                    "Swap %s carries no usable price inputs (totalCollateral=%s circulatingSupply=%s); price=0",
                    event.event_key,
                    event.args.total_collateral,
                    event.args.circulating_supply,
                )
            return price

        return await self.onchain_price(block_tag=event.block_tag, context=event.kind)
