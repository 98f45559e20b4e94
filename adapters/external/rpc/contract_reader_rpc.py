from __future__ import annotations

import re
from typing import Any, Dict, Sequence, Tuple

from eth_abi import decode, encode
from web3 import Web3

from adapters.external.rpc.json_rpc_http_client import JsonRpcHttpClient
from core.domain.errors import RpcError
from core.ports.onchain_reader import CIRCULATING_SUPPLY, TOTAL_COLLATERAL_VALUE, BlockTag, OnChainReader

_BLOCK_HASH = re.compile(r"^0x[0-9a-fA-F]{64}$")


class ContractMethod:
    """ABI fragment for a read-only method."""

    def __init__(self, name: str, inputs: Tuple[str, ...], outputs: Tuple[str, ...]) -> None:
        self.name = name
        self.inputs = inputs
        self.outputs = outputs
        signature = f"{name}({','.join(inputs)})"
        self.selector: bytes = bytes(Web3.keccak(text=signature))[:4]

    def encode_call(self, args: Sequence[Any]) -> str:
        if len(args) != len(self.inputs):
            raise ValueError(f"{self.name} expects {len(self.inputs)} args, got {len(args)}")
        body = encode(list(self.inputs), list(args)) if self.inputs else b""
        return "0x" + (self.selector + body).hex()

    def decode_result(self, raw_hex: str) -> Any:
        data = bytes.fromhex(raw_hex[2:] if raw_hex.startswith("0x") else raw_hex)
        if not data:
            raise RpcError(f"{self.name} returned empty data (no contract or reverted)")
        values = decode(list(self.outputs), data)
        return values[0] if len(values) == 1 else tuple(values)


KNOWN_METHODS: Dict[str, ContractMethod] = {
    m.name: m
    for m in (
        ContractMethod(TOTAL_COLLATERAL_VALUE, (), ("uint256",)),
        ContractMethod(CIRCULATING_SUPPLY, (), ("uint256",)),
        ContractMethod("decimals", (), ("uint8",)),
        ContractMethod("symbol", (), ("string",)),
        ContractMethod("name", (), ("string",)),
    )
}


def format_block_tag(block_tag: BlockTag) -> Any:
    """
    JSON-RPC block parameter: hex quantity for numbers, EIP-1898 object for hashes.
    """
    if isinstance(block_tag, bool):
        raise ValueError("invalid block tag")
    if isinstance(block_tag, int):
        return hex(block_tag)
    tag = str(block_tag).strip()
    if _BLOCK_HASH.match(tag):
        return {"blockHash": tag.lower()}
    return tag


class ContractReaderRpc(OnChainReader):
    """
    OnChainReader over `eth_call`.

    Selectors come from Web3.keccak over the method signature; arguments and
    results are ABI-encoded with eth_abi.
    """

    def __init__(self, *, client: JsonRpcHttpClient) -> None:
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(
        self,
        contract_address: str,
        method: str,
        args: Sequence[Any] = (),
        block_tag: BlockTag = "latest",
    ) -> Any:
        fn = KNOWN_METHODS.get(method)
        if fn is None:
            raise ValueError(f"unknown contract method: {method}")

        tx = {
            "to": Web3.to_checksum_address(contract_address),
            "data": fn.encode_call(args),
        }
        raw = await self._client.request("eth_call", [tx, format_block_tag(block_tag)])
        if not isinstance(raw, str):
            raise RpcError(f"{method} returned non-hex result: {raw!r}")
        return fn.decode_result(raw)
