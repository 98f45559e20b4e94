from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence, Union

BlockTag = Union[int, str]

TOTAL_COLLATERAL_VALUE = "getTotalCollateralValue"
CIRCULATING_SUPPLY = "getCirculatingSupply"


class OnChainReader(ABC):
    """
    Port for reading contract state pinned to a historical block.

    `block_tag` is a block number, a block hash ("0x" + 64 hex chars) or a
    named tag such as "latest".
    """

    @abstractmethod
    async def call(
        self,
        contract_address: str,
        method: str,
        args: Sequence[Any] = (),
        block_tag: BlockTag = "latest",
    ) -> Any:
        """
        Execute a read-only contract call and return the decoded result.

        Single-output methods return the bare value; multi-output methods a tuple.
        """
        raise NotImplementedError
