import asyncio

import pytest

from conftest import E18, LMKT, MDAI, T0, TREASURY, swap_event
from config.indexer_config import IndexerConfig
from config.settings import settings
from workers.indexer_supervisor import IndexerSupervisor


@pytest.fixture
def memory_settings(monkeypatch):
    monkeypatch.setattr(settings, "STORE_BACKEND", "memory")
    monkeypatch.setattr(settings, "INGESTION_WORKERS", 3)
    monkeypatch.setattr(settings, "RPC_URL", "http://127.0.0.1:9")
    monkeypatch.setattr(settings, "RPC_TIMEOUT_S", 1.0)
    return settings


async def test_submitted_swaps_reach_candles(memory_settings):
    config = IndexerConfig(
        treasury_address=TREASURY,
        lmkt_address=LMKT,
        collateral_address=MDAI,
        intervals=(60,),
    )
    supervisor = IndexerSupervisor(config=config)
    await supervisor.start()
    try:
        assert supervisor.db is None
        results = []
        for i in range(3):
            event = swap_event(
                ts=T0 + i,
                collateral=E18,
                lmkt=E18,
                total_collateral=2 * E18,
                circulating_supply=E18,
                tx=f"0x{i}",
                block=100 + i,
            )
            result = await asyncio.wait_for(supervisor.submit(event), timeout=30)
            results.append(result.status)
    finally:
        await supervisor.stop()

    assert results == ["applied", "applied", "applied"]

    result = await supervisor.dispatcher.execute(
        swap_event(ts=T0, collateral=E18, lmkt=E18, total_collateral=2 * E18, circulating_supply=E18, tx="0x0", block=100)
    )
    assert result.status == "duplicate"


async def test_submit_before_start_fails():
    supervisor = IndexerSupervisor(
        config=IndexerConfig(treasury_address=TREASURY, lmkt_address=LMKT, collateral_address=MDAI)
    )
    with pytest.raises(RuntimeError):
        await supervisor.submit({})
