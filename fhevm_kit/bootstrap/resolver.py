"""Classify a connection endpoint as a local mock chain or a remote network."""

from __future__ import annotations

import logging
from typing import Mapping

import httpx

from fhevm_kit.core.config import get_settings
from fhevm_kit.core.rpc import get_chain_id
from fhevm_kit.core.types import ChainTarget, Endpoint

logger = logging.getLogger(__name__)

# Local Hardhat node. Always present unless a caller override replaces the URL.
DEFAULT_MOCK_CHAINS: dict[int, str] = {31337: "http://localhost:8545"}


def build_mock_chains(overrides: Mapping[int, str] | None = None) -> dict[int, str]:
    """Merge caller overrides on top of the configured mock chain map."""
    mock_chains = dict(DEFAULT_MOCK_CHAINS)
    mock_chains.update(get_settings().mock_chains)
    if overrides:
        mock_chains.update({int(k): v for k, v in overrides.items()})
    return mock_chains


async def resolve(
    endpoint: Endpoint,
    mock_chains: Mapping[int, str] | None = None,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChainTarget:
    """Resolve the chain id and backend mode for ``endpoint``.

    A URL endpoint is its own RPC URL. An injected provider has none, so a
    mock chain takes its URL from the mock map. Network failures propagate.
    """
    chain_id = await get_chain_id(endpoint, timeout=timeout, transport=transport)

    rpc_url = endpoint if isinstance(endpoint, str) else None
    chains = build_mock_chains(mock_chains)

    if chain_id in chains:
        if not rpc_url:
            rpc_url = chains[chain_id]
        target = ChainTarget(is_mock=True, chain_id=chain_id, rpc_url=rpc_url)
    else:
        target = ChainTarget(is_mock=False, chain_id=chain_id, rpc_url=rpc_url)

    logger.debug(
        "Resolved endpoint: mode=%s rpc_url=%s",
        target.mode.value,
        target.rpc_url,
        extra={"chain_id": chain_id},
    )
    return target
