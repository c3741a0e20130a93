"""Local mock engine for FHEVM Hardhat development nodes.

A Hardhat node started with the FHEVM plugin answers
``fhevm_relayer_metadata`` with the addresses of its ACL, input verifier
and KMS verifier contracts. When that metadata is present the factory
builds a mock engine through a ``MockEngineProvider`` instead of the
relayer SDK. Mock engines generate their keys locally and never touch the
persistent public key cache.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from typing import Any, Mapping, Protocol, Sequence

import httpx
from cryptography.hazmat.primitives.asymmetric import x25519
from pydantic import ValidationError

from fhevm_kit.core.errors import RpcError
from fhevm_kit.core.rpc import get_relayer_metadata, get_web3_client_version
from fhevm_kit.core.types import FhevmInstance, RelayerMetadata
from fhevm_kit.decryption.eip712 import build_user_decrypt_eip712

logger = logging.getLogger(__name__)

_METADATA_FIELDS = ("ACLAddress", "InputVerifierAddress", "KMSVerifierAddress")


# ── Node detection ───────────────────────────────────────────────────────────


async def is_hardhat_node(
    rpc_url: str,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Return True when the node self-identifies as Hardhat.

    Raises:
        RpcError: WEB3_CLIENTVERSION_ERROR if the endpoint is unreachable.
    """
    version = await get_web3_client_version(rpc_url, timeout=timeout, transport=transport)
    return isinstance(version, str) and "hardhat" in version.lower()


def parse_relayer_metadata(raw: Any) -> RelayerMetadata | None:
    """Validate a raw metadata payload; None if any address is missing or malformed."""
    if not isinstance(raw, Mapping):
        return None
    for field in _METADATA_FIELDS:
        value = raw.get(field)
        if not (isinstance(value, str) and value.startswith("0x")):
            return None
    try:
        return RelayerMetadata.model_validate(dict(raw))
    except ValidationError:
        return None


async def try_fetch_relayer_metadata(
    rpc_url: str,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RelayerMetadata | None:
    """Fetch relayer metadata from a FHEVM Hardhat node.

    Returns None when the node is not Hardhat or the metadata call fails.
    An unreachable endpoint still raises from the client-version query.
    """
    if not await is_hardhat_node(rpc_url, timeout=timeout, transport=transport):
        logger.debug("Node at %s is not a Hardhat node", rpc_url)
        return None
    try:
        raw = await get_relayer_metadata(rpc_url, timeout=timeout, transport=transport)
    except RpcError as exc:
        logger.debug("No FHEVM relayer metadata at %s: %s", rpc_url, exc)
        return None
    return parse_relayer_metadata(raw)


# ── Provider abstraction ─────────────────────────────────────────────────────


class MockEngineProvider(Protocol):
    """Builds engine instances bound to a mock node."""

    async def create_instance(
        self, rpc_url: str, chain_id: int, metadata: RelayerMetadata
    ) -> FhevmInstance:
        ...


class MockEncryptedInput:
    """Encrypted-input builder for ``MockFhevmInstance``.

    Each value gets a fresh random handle whose cleartext is registered with
    the instance, so an authorized user can decrypt it later. The proof is a
    digest over contract, user and handles.
    """

    def __init__(self, instance: MockFhevmInstance, contract_address: str, user_address: str) -> None:
        self._instance = instance
        self.contract_address = contract_address
        self.user_address = user_address
        self._values: list[int] = []

    def add8(self, value: int) -> MockEncryptedInput:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFF:
            raise ValueError(f"{value!r} does not fit in an 8-bit encrypted integer")
        self._values.append(value)
        return self

    async def encrypt(self) -> dict[str, Any]:
        if not self._values:
            raise ValueError("Encrypted input has no values")
        handles = []
        for value in self._values:
            handle = "0x" + os.urandom(32).hex()
            self._instance.register_cleartext(handle, value)
            handles.append(handle)
        proof = hashlib.sha256(
            "|".join([self.contract_address.lower(), self.user_address.lower(), *handles]).encode()
        ).hexdigest()
        return {"handles": handles, "inputProof": "0x" + proof}


class MockFhevmInstance:
    """In-process engine stand-in for local development.

    Keys are generated locally. Decryption serves cleartexts registered
    with ``register_cleartext`` after checking the request is authorized
    for the handle's contract and still inside its validity window.
    """

    def __init__(self, rpc_url: str, chain_id: int, metadata: RelayerMetadata) -> None:
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.metadata = metadata
        self._public_key = os.urandom(32)
        self._public_params: dict[int, bytes] = {}
        self._cleartexts: dict[str, int | bool] = {}

    def create_encrypted_input(self, contract_address: str, user_address: str) -> MockEncryptedInput:
        return MockEncryptedInput(self, contract_address, user_address)

    def generate_keypair(self) -> dict[str, str]:
        sk = x25519.X25519PrivateKey.generate()
        return {
            "publicKey": "0x" + sk.public_key().public_bytes_raw().hex(),
            "privateKey": "0x" + sk.private_bytes_raw().hex(),
        }

    def create_eip712(
        self,
        public_key: str,
        contract_addresses: Sequence[str],
        start_timestamp: int,
        duration_days: int,
    ) -> dict[str, Any]:
        return build_user_decrypt_eip712(
            chain_id=self.chain_id,
            verifying_contract=self.metadata.kms_verifier_address,
            public_key=public_key,
            contract_addresses=contract_addresses,
            start_timestamp=start_timestamp,
            duration_days=duration_days,
        )

    def get_public_key(self) -> bytes:
        return self._public_key

    def get_public_params(self, bits: int) -> bytes:
        if bits not in self._public_params:
            self._public_params[bits] = os.urandom(max(bits // 8, 1))
        return self._public_params[bits]

    def register_cleartext(self, handle: str, value: int | bool) -> None:
        self._cleartexts[handle] = value

    async def user_decrypt(
        self,
        handles: Sequence[Mapping[str, str]],
        private_key: str,
        public_key: str,
        signature: str,
        contract_addresses: Sequence[str],
        user_address: str,
        start_timestamp: int,
        duration_days: int,
    ) -> dict[str, int | bool]:
        if not signature:
            raise PermissionError("Missing decryption signature")
        if time.time() >= start_timestamp + duration_days * 86400:
            raise PermissionError("Decryption signature has expired")

        allowed = {a.lower() for a in contract_addresses}
        results: dict[str, int | bool] = {}
        for item in handles:
            handle, contract = item["handle"], item["contractAddress"]
            if contract.lower() not in allowed:
                raise PermissionError(f"Contract {contract} is not covered by the signature")
            if handle not in self._cleartexts:
                raise KeyError(f"Unknown handle {handle}")
            results[handle] = self._cleartexts[handle]
        return results


class LocalMockEngineProvider:
    """Default provider: builds a ``MockFhevmInstance``."""

    async def create_instance(
        self, rpc_url: str, chain_id: int, metadata: RelayerMetadata
    ) -> MockFhevmInstance:
        logger.info(
            "Creating mock FHEVM instance at %s",
            rpc_url,
            extra={"chain_id": chain_id, "acl_address": metadata.acl_address},
        )
        return MockFhevmInstance(rpc_url, chain_id, metadata)
