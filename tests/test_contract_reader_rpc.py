"""Tests for eth_call encoding and decoding over a mocked JSON-RPC transport."""

import json

import httpx
import pytest
from eth_abi import encode

from conftest import MDAI, OTHER, TREASURY
from adapters.external.rpc.contract_reader_rpc import (
    KNOWN_METHODS,
    ContractMethod,
    ContractReaderRpc,
    format_block_tag,
)
from adapters.external.rpc.json_rpc_http_client import JsonRpcHttpClient
from core.domain.errors import RpcError


def _reader(responder):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        return httpx.Response(200, json=responder(body))

    client = JsonRpcHttpClient(endpoint="http://rpc.test", transport=httpx.MockTransport(handler))
    return ContractReaderRpc(client=client), requests


def _result(body, value):
    return {"jsonrpc": "2.0", "id": body["id"], "result": value}


def test_well_known_selectors():
    assert KNOWN_METHODS["decimals"].selector.hex() == "313ce567"
    assert KNOWN_METHODS["symbol"].selector.hex() == "95d89b41"
    assert set(KNOWN_METHODS) == {"getTotalCollateralValue", "getCirculatingSupply", "decimals", "symbol", "name"}


def test_format_block_tag():
    block_hash = "0x" + "AB" * 32
    assert format_block_tag(100) == "0x64"
    assert format_block_tag("latest") == "latest"
    assert format_block_tag(block_hash) == {"blockHash": block_hash.lower()}
    with pytest.raises(ValueError):
        format_block_tag(True)


async def test_uint_call_pinned_to_block_number():
    reader, requests = _reader(lambda body: _result(body, "0x" + encode(["uint256"], [5 * 10**18]).hex()))
    try:
        value = await reader.call(TREASURY, "getTotalCollateralValue", (), 100)
    finally:
        await reader.aclose()

    assert value == 5 * 10**18
    (body,) = requests
    assert body["method"] == "eth_call"
    tx, tag = body["params"]
    assert tag == "0x64"
    assert tx["to"].lower() == TREASURY
    assert tx["data"] == "0x" + KNOWN_METHODS["getTotalCollateralValue"].selector.hex()


def test_method_arguments_are_abi_encoded():
    method = ContractMethod("balanceOf", ("address",), ("uint256",))
    data = method.encode_call((OTHER,))

    assert data.startswith("0x70a08231")
    assert data.endswith(OTHER[2:])
    assert len(data) == 2 + 8 + 64
    with pytest.raises(ValueError):
        method.encode_call(())


async def test_latest_tag_is_passed_through():
    reader, requests = _reader(lambda body: _result(body, "0x" + encode(["uint8"], [18]).hex()))
    try:
        assert await reader.call(MDAI, "decimals") == 18
    finally:
        await reader.aclose()

    assert requests[0]["params"][1] == "latest"
    assert requests[0]["params"][0]["data"] == "0x313ce567"


async def test_string_and_small_uint_results():
    answers = {
        "0x95d89b41": "0x" + encode(["string"], ["MDAI"]).hex(),
        "0x313ce567": "0x" + encode(["uint8"], [6]).hex(),
    }
    reader, _ = _reader(lambda body: _result(body, answers[body["params"][0]["data"]]))
    try:
        assert await reader.call(MDAI, "symbol") == "MDAI"
        assert await reader.call(MDAI, "decimals") == 6
    finally:
        await reader.aclose()


async def test_rpc_error_member_raises():
    reader, _ = _reader(
        lambda body: {"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": "header not found"}}
    )
    try:
        with pytest.raises(RpcError) as excinfo:
            await reader.call(TREASURY, "getCirculatingSupply", (), 100)
    finally:
        await reader.aclose()
    assert excinfo.value.code == -32000


async def test_empty_result_raises():
    reader, _ = _reader(lambda body: _result(body, "0x"))
    try:
        with pytest.raises(RpcError):
            await reader.call(TREASURY, "getCirculatingSupply", (), 100)
    finally:
        await reader.aclose()


async def test_unknown_method_is_rejected():
    reader, requests = _reader(lambda body: _result(body, "0x"))
    try:
        with pytest.raises(ValueError):
            await reader.call(TREASURY, "mint", (), "latest")
    finally:
        await reader.aclose()
    assert requests == []
