"""Tests for idempotent token/pair registration."""

import asyncio

from adapters.external.memory.memory_store import PairRepositoryMemory, TokenRepositoryMemory
from conftest import LMKT, MDAI, OTHER, TREASURY, StubReader
from core.services.pair_registry_service import PairRegistryService


def _registry(reader=None) -> PairRegistryService:
    return PairRegistryService(
        token_repository=TokenRepositoryMemory(),
        pair_repository=PairRepositoryMemory(),
        metadata_reader=reader,
    )


async def test_token_defaults_without_reader():
    registry = _registry()
    token = await registry.get_or_create_token(MDAI.upper().replace("0X", "0x"))
    assert token.id == MDAI
    assert token.decimals == 18
    assert token.symbol == "UNKNOWN"


async def test_token_metadata_read_from_chain():
    reader = StubReader({"decimals": 6, "symbol": "USDC", "name": "USD Coin"})
    registry = _registry(reader)
    token = await registry.get_or_create_token(OTHER)
    assert (token.decimals, token.symbol, token.name) == (6, "USDC", "USD Coin")

    again = await registry.get_or_create_token(OTHER)
    assert again == token
    # metadata read once, on creation only
    assert len(reader.calls) == 3


async def test_token_metadata_failure_falls_back_to_defaults():
    registry = _registry(StubReader({}, fail_first=1))
    token = await registry.get_or_create_token(OTHER)
    assert token.decimals == 18
    assert token.symbol == "UNKNOWN"
    assert token.name == "UNKNOWN"


async def test_existing_pair_is_never_overwritten():
    registry = _registry()
    first = await registry.get_or_create_pair(TREASURY, MDAI, LMKT, 1000)
    second = await registry.get_or_create_pair(TREASURY.upper().replace("0X", "0x"), OTHER, OTHER, 5000)

    assert second.id == TREASURY
    assert second.token0_id == MDAI
    assert second.token1_id == LMKT
    assert second.created_timestamp == first.created_timestamp == 1000


async def test_concurrent_creation_resolves_to_single_pair():
    tokens = TokenRepositoryMemory()
    pairs = PairRepositoryMemory()
    registry = PairRegistryService(token_repository=tokens, pair_repository=pairs)

    results = await asyncio.gather(
        registry.get_or_create_pair(TREASURY, MDAI, LMKT, 1000),
        registry.get_or_create_pair(TREASURY, MDAI, LMKT, 1060),
        registry.get_or_create_pair(TREASURY, MDAI, LMKT, 1120),
    )

    stored = await pairs.get(TREASURY)
    assert stored is not None
    assert all(r.created_timestamp == stored.created_timestamp for r in results)
