from fastapi import FastAPI
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from conftest import E18, T0, TREASURY, StubReader, build_indexer, purchase_event, swap_event, treasury_state
from adapters.entry.http.events_router import router as events_router


class DispatcherSupervisor:
    """Dispatches inline, the way a started supervisor's partitions do."""

    def __init__(self, dispatcher) -> None:
        self.dispatcher = dispatcher
        self.submitted = []

    async def submit(self, raw):
        self.submitted.append(raw)
        return await self.dispatcher.execute(raw)


class BrokenStoreSupervisor:
    async def submit(self, raw):
        raise ServerSelectionTimeoutError("mongo unreachable")


def _client(supervisor=None) -> TestClient:
    app = FastAPI()
    app.include_router(events_router)
    if supervisor is not None:
        app.state.supervisor = supervisor
    return TestClient(app)


def _swap(i: int):
    return swap_event(
        ts=T0 + i,
        collateral=E18,
        lmkt=E18,
        total_collateral=2 * E18,
        circulating_supply=E18,
        tx=f"0x{i}",
        block=100 + i,
    )


def test_batch_reports_status_per_event():
    ix = build_indexer(intervals=(60,))
    supervisor = DispatcherSupervisor(ix.dispatcher)

    r = _client(supervisor).post("/events", json={"events": [_swap(0), _swap(0), {"kind": "swap"}]})

    assert r.status_code == 200
    body = r.json()
    assert body["processed"] == 3
    assert [x["status"] for x in body["results"]] == ["applied", "duplicate", "malformed"]
    assert body["results"][0]["pair_id"] == TREASURY


def test_single_event_is_accepted():
    ix = build_indexer(intervals=(60,))
    r = _client(DispatcherSupervisor(ix.dispatcher)).post("/events", json={"events": _swap(0)})

    assert r.status_code == 200
    assert r.json()["results"][0]["status"] == "applied"


def test_unavailable_price_returns_503_and_stops_batch():
    ix = build_indexer(reader=StubReader(treasury_state(2 * E18, E18), fail_first=3), intervals=(60,))
    supervisor = DispatcherSupervisor(ix.dispatcher)
    events = [_swap(0), purchase_event(ts=T0 + 1, block=101, lmkt=E18), _swap(2)]

    r = _client(supervisor).post("/events", json={"events": events})

    assert r.status_code == 503
    detail = r.json()["detail"]
    assert detail["failed_index"] == 1
    assert [x["status"] for x in detail["results"]] == ["applied"]
    assert len(supervisor.submitted) == 2
    assert "0xpurchase:0" not in ix.processed._items

    # host redelivers the batch once the RPC endpoint recovers
    r = _client(supervisor).post("/events", json={"events": events})

    assert r.status_code == 200
    assert [x["status"] for x in r.json()["results"]] == ["duplicate", "applied", "applied"]
    c = ix.candles.all()[0]
    assert c.trades == 3


def test_storage_error_returns_503():
    r = _client(BrokenStoreSupervisor()).post("/events", json={"events": [_swap(0)]})

    assert r.status_code == 503
    assert r.json()["detail"]["failed_index"] == 0


def test_not_started_returns_503():
    r = _client().post("/events", json={"events": []})
    assert r.status_code == 503
