"""Minimal async JSON-RPC transport for endpoint probing.

Only the three calls the bootstrap needs are wrapped here:
``eth_chainId``, ``web3_clientVersion`` and ``fhevm_relayer_metadata``.
Each call opens a short-lived client and closes it before returning.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Sequence

import httpx

from fhevm_kit.core.config import get_settings
from fhevm_kit.core.errors import ErrorCode, RpcError
from fhevm_kit.core.types import Eip1193Provider, Endpoint

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """Async JSON-RPC 2.0 client over HTTP.

    Usage::

        async with JsonRpcClient("http://localhost:8545") as rpc:
            version = await rpc.send("web3_clientVersion")
    """

    def __init__(
        self,
        url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or get_settings().rpc_timeout_seconds),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> JsonRpcClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def send(self, method: str, params: Sequence[Any] | None = None) -> Any:
        """Send one request and return its ``result`` member.

        Raises:
            RpcError: ENDPOINT_UNREACHABLE on transport failure, RPC_ERROR on
                an HTTP error status, malformed body, or JSON-RPC error object.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }
        logger.debug("RPC %s -> %s", method, self.url)

        try:
            resp = await self._client.post(self.url, json=payload)
        except httpx.RequestError as exc:
            raise RpcError(
                f"The URL {self.url} is not reachable: {exc}",
                code=ErrorCode.ENDPOINT_UNREACHABLE,
                cause=exc,
            ) from exc

        if resp.status_code >= 400:
            raise RpcError(f"{method} failed with HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise RpcError(f"{method} returned a malformed response", cause=exc) from exc

        if not isinstance(body, dict):
            raise RpcError(f"{method} returned a malformed response")
        if body.get("error"):
            err = body["error"]
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            raise RpcError(f"{method} failed: {message}")
        return body.get("result")


def parse_chain_id(value: Any) -> int:
    """Parse an ``eth_chainId`` result (hex string or integer)."""
    if isinstance(value, bool):
        raise RpcError(f"Invalid chain id: {value!r}", code=ErrorCode.CHAIN_ID_ERROR)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            pass
    raise RpcError(f"Invalid chain id: {value!r}", code=ErrorCode.CHAIN_ID_ERROR)


async def get_chain_id(
    endpoint: Endpoint,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Query the chain id of a URL endpoint or an injected provider."""
    if isinstance(endpoint, str):
        async with JsonRpcClient(endpoint, timeout=timeout, transport=transport) as rpc:
            raw = await rpc.send("eth_chainId")
    elif isinstance(endpoint, Eip1193Provider):
        raw = await endpoint.request("eth_chainId", [])
    else:
        raise TypeError(f"Unsupported endpoint type: {type(endpoint).__name__}")
    return parse_chain_id(raw)


async def get_web3_client_version(
    rpc_url: str,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Return the node's ``web3_clientVersion`` string."""
    try:
        async with JsonRpcClient(rpc_url, timeout=timeout, transport=transport) as rpc:
            return await rpc.send("web3_clientVersion")
    except RpcError as exc:
        raise RpcError(
            f"The URL {rpc_url} is not a Web3 node or is not reachable. Please check the endpoint.",
            code=ErrorCode.WEB3_CLIENTVERSION_ERROR,
            cause=exc,
        ) from exc


async def get_relayer_metadata(
    rpc_url: str,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Return the raw ``fhevm_relayer_metadata`` result of a Hardhat node."""
    try:
        async with JsonRpcClient(rpc_url, timeout=timeout, transport=transport) as rpc:
            return await rpc.send("fhevm_relayer_metadata")
    except RpcError as exc:
        raise RpcError(
            f"The URL {rpc_url} is not a FHEVM Hardhat node or is not reachable. "
            "Please check the endpoint.",
            code=ErrorCode.FHEVM_RELAYER_METADATA_ERROR,
            cause=exc,
        ) from exc
