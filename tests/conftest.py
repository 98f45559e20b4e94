import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pytest

from adapters.external.memory.memory_store import (
    AuditRepositoryMemory,
    CandleRepositoryMemory,
    PairRepositoryMemory,
    ProcessedEventRepositoryMemory,
    TokenRepositoryMemory,
)
from config.indexer_config import IndexerConfig
from core.domain.errors import RpcError
from core.ports.onchain_reader import CIRCULATING_SUPPLY, TOTAL_COLLATERAL_VALUE, OnChainReader
from core.services.pair_registry_service import PairRegistryService
from core.services.price_resolver_service import PriceResolverService
from core.services.retry_policy import RetryPolicy
from core.usecases.apply_trade_use_case import ApplyTradeUseCase
from core.usecases.backfill_candle_gaps_use_case import BackfillCandleGapsUseCase
from core.usecases.dispatch_chain_event_use_case import DispatchChainEventUseCase

TREASURY = "0x" + "aa" * 20
LMKT = "0x" + "bb" * 20
MDAI = "0x" + "cc" * 20
OTHER = "0x" + "dd" * 20

E18 = 10**18
T0 = 1_700_000_040  # aligned to 60s


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as requiring an event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            signature = inspect.signature(test_function)
            filtered_args = {
                name: value
                for name, value in pyfuncitem.funcargs.items()
                if name in signature.parameters
            }
            loop.run_until_complete(test_function(**filtered_args))
        finally:
            loop.run_until_complete(asyncio.sleep(0))
            loop.close()
            asyncio.set_event_loop(None)
        return True
    return None


class StubReader(OnChainReader):
    """Reader stub: fails the first `fail_first` calls, then serves `values` by method name."""

    def __init__(self, values: Optional[Dict[str, Any]] = None, fail_first: int = 0) -> None:
        self.values = dict(values or {})
        self.fail_first = int(fail_first)
        self.calls: List[tuple] = []

    async def call(self, contract_address, method, args=(), block_tag="latest"):
        self.calls.append((contract_address, method, tuple(args), block_tag))
        if self.fail_first > 0:
            self.fail_first -= 1
            raise RpcError("rpc endpoint unavailable")
        if method not in self.values:
            raise RpcError(f"execution reverted: {method}")
        return self.values[method]


def treasury_state(total_collateral: int, circulating_supply: int) -> Dict[str, int]:
    return {TOTAL_COLLATERAL_VALUE: total_collateral, CIRCULATING_SUPPLY: circulating_supply}


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class Indexer:
    config: IndexerConfig
    reader: StubReader
    sleep: RecordingSleep
    tokens: TokenRepositoryMemory
    pairs: PairRepositoryMemory
    candles: CandleRepositoryMemory
    processed: ProcessedEventRepositoryMemory
    audit: AuditRepositoryMemory
    registry: PairRegistryService
    prices: PriceResolverService
    backfill: BackfillCandleGapsUseCase
    apply_trade: ApplyTradeUseCase
    dispatcher: DispatchChainEventUseCase
    extras: Dict[str, Any] = field(default_factory=dict)


def build_indexer(
    *,
    reader: Optional[StubReader] = None,
    intervals: Sequence[int] = (60, 300, 900, 3600, 14400, 86400),
    now: Optional[int] = None,
    backfill_max_steps: int = 1000,
) -> Indexer:
    config = IndexerConfig(
        treasury_address=TREASURY,
        lmkt_address=LMKT,
        collateral_address=MDAI,
        intervals=tuple(intervals),
        backfill_max_steps=backfill_max_steps,
        retry_policy=RetryPolicy(max_attempts=3, initial_delay_ms=1000, backoff_multiplier=2.0),
    )
    reader = reader or StubReader()
    sleep = RecordingSleep()
    tokens = TokenRepositoryMemory()
    pairs = PairRepositoryMemory()
    candles = CandleRepositoryMemory()
    processed = ProcessedEventRepositoryMemory()
    audit = AuditRepositoryMemory()

    registry = PairRegistryService(token_repository=tokens, pair_repository=pairs)
    prices = PriceResolverService(
        reader=reader,
        treasury_address=TREASURY,
        retry_policy=config.retry_policy,
        sleep=sleep,
    )
    backfill = BackfillCandleGapsUseCase(candle_repository=candles, max_steps=config.backfill_max_steps)
    apply_trade = ApplyTradeUseCase(candle_repository=candles, backfill_use_case=backfill)

    clock_kwargs = {} if now is None else {"clock": lambda: float(now)}
    dispatcher = DispatchChainEventUseCase(
        config=config,
        registry=registry,
        price_resolver=prices,
        apply_trade_use_case=apply_trade,
        processed_event_repository=processed,
        audit_repository=audit,
        **clock_kwargs,
    )
    return Indexer(
        config=config,
        reader=reader,
        sleep=sleep,
        tokens=tokens,
        pairs=pairs,
        candles=candles,
        processed=processed,
        audit=audit,
        registry=registry,
        prices=prices,
        backfill=backfill,
        apply_trade=apply_trade,
        dispatcher=dispatcher,
    )


def _meta(ts: int, tx: str, log_index: int, block: int, address: str) -> Dict[str, Any]:
    return {
        "address": address,
        "blockNumber": block,
        "blockTimestamp": ts,
        "transactionHash": tx,
        "logIndex": log_index,
    }


def swap_event(
    *,
    ts: int,
    collateral: int,
    lmkt: int,
    total_collateral: Optional[int],
    circulating_supply: Optional[int],
    tx: str = "0xswap",
    log_index: int = 0,
    block: int = 100,
) -> Dict[str, Any]:
    args: Dict[str, Any] = {
        "sender": OTHER,
        "collateralToken": MDAI,
        "collateralAmount": str(collateral),
        "lmktAmount": str(lmkt),
        "isBuy": True,
    }
    if total_collateral is not None:
        args["totalCollateral"] = str(total_collateral)
    if circulating_supply is not None:
        args["circulatingSupply"] = str(circulating_supply)
    return {"kind": "swap", **_meta(ts, tx, log_index, block, TREASURY), "args": args}


def purchase_event(*, ts: int, lmkt: int, tx: str = "0xpurchase", log_index: int = 0, block: int = 100):
    return {
        "kind": "purchase",
        **_meta(ts, tx, log_index, block, OTHER),
        "args": {"listingId": 7, "buyer": OTHER, "seller": MDAI, "lmktAmount": str(lmkt)},
    }


def listing_fee_event(
    *, ts: int, fee: int, tx: str = "0xlisting", log_index: int = 0, block: int = 100, action: str = "created"
):
    return {
        "kind": "listing_fee",
        "action": action,
        **_meta(ts, tx, log_index, block, OTHER),
        "args": {"listingId": 1, "vendor": OTHER, "feePaid": str(fee)},
    }


def fee_transfer_event(
    *,
    ts: int,
    value: int,
    to: str = TREASURY,
    token: str = MDAI,
    tx: str = "0xfee",
    log_index: int = 0,
    block: int = 100,
):
    return {
        "kind": "fee_transfer",
        **_meta(ts, tx, log_index, block, token),
        "args": {"from": OTHER, "to": to, "value": hex(value)},
    }


@pytest.fixture
def indexer() -> Indexer:
    return build_indexer()
