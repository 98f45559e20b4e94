from __future__ import annotations

import itertools
from typing import Any, List, Optional

import httpx

from core.domain.errors import RpcError


class JsonRpcHttpClient:
    """
    Minimal Ethereum JSON-RPC client.

    Uses POST JSON:
      { "jsonrpc": "2.0", "id": n, "method": "...", "params": [...] }

    Transport failures and `error` members are raised as RpcError.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        timeout_s: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._endpoint = str(endpoint).strip()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s, connect=5.0),
            transport=transport,
        )
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            r = await self._client.post(self._endpoint, json=payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RpcError(f"{method} transport failure: {exc}") from exc

        err = data.get("error") if isinstance(data, dict) else None
        if err:
            raise RpcError(
                f"{method} failed: {err.get('message', err)}",
                code=err.get("code"),
                data=err.get("data"),
            )
        if not isinstance(data, dict) or "result" not in data:
            raise RpcError(f"{method} returned no result")
        return data["result"]
