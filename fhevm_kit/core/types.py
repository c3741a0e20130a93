"""Shared enums, models and capability protocols used across the kit."""

from __future__ import annotations

import enum
from typing import Any, Callable, Mapping, Protocol, Sequence, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class BootstrapMode(str, enum.Enum):
    """Backend used to build an engine instance."""

    MOCK = "mock"
    REMOTE = "remote"


class BootstrapStatus(str, enum.Enum):
    """Forward-only progress steps reported while building an instance."""

    SDK_LOADING = "sdk-loading"
    SDK_LOADED = "sdk-loaded"
    SDK_INITIALIZING = "sdk-initializing"
    SDK_INITIALIZED = "sdk-initialized"
    CREATING = "creating"


# ── Models ───────────────────────────────────────────────────────────────────


class ChainTarget(BaseModel):
    """Result of resolving a connection endpoint."""

    model_config = ConfigDict(frozen=True)

    is_mock: bool
    chain_id: int
    rpc_url: str | None = None

    @property
    def mode(self) -> BootstrapMode:
        return BootstrapMode.MOCK if self.is_mock else BootstrapMode.REMOTE


class RelayerMetadata(BaseModel):
    """Contract addresses reported by a local FHEVM Hardhat node."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    acl_address: str = Field(alias="ACLAddress")
    input_verifier_address: str = Field(alias="InputVerifierAddress")
    kms_verifier_address: str = Field(alias="KMSVerifierAddress")


# ── Capabilities ─────────────────────────────────────────────────────────────


@runtime_checkable
class Eip1193Provider(Protocol):
    """Injected wallet/provider capability speaking raw JSON-RPC."""

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        ...


@runtime_checkable
class EncryptedInputBuilder(Protocol):
    """Collects cleartext values to encrypt for one contract call."""

    def add8(self, value: int) -> EncryptedInputBuilder:
        ...

    async def encrypt(self) -> Mapping[str, Any]:
        """Return ``{"handles": [...], "inputProof": ...}``, one handle per value."""
        ...


@runtime_checkable
class FhevmInstance(Protocol):
    """Engine instance produced by the relayer SDK or the mock provider."""

    def create_encrypted_input(self, contract_address: str, user_address: str) -> EncryptedInputBuilder:
        """Start an input bound to ``contract_address`` and the sending user."""
        ...

    def generate_keypair(self) -> Mapping[str, str]:
        """Return ``{"publicKey": ..., "privateKey": ...}``."""
        ...

    def create_eip712(
        self,
        public_key: str,
        contract_addresses: Sequence[str],
        start_timestamp: int,
        duration_days: int,
    ) -> dict[str, Any]:
        ...

    def get_public_key(self) -> bytes | str | None:
        ...

    def get_public_params(self, bits: int) -> bytes | str | None:
        ...

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
        ...


@runtime_checkable
class RelayerSDK(Protocol):
    """Loaded relayer SDK entry point."""

    network_config: Mapping[str, Any]

    async def init_sdk(self, options: Mapping[str, Any] | None = None) -> bool:
        ...

    async def create_instance(self, config: Mapping[str, Any]) -> FhevmInstance:
        ...


@runtime_checkable
class Signer(Protocol):
    """Wallet signer capability."""

    async def get_address(self) -> str:
        ...

    async def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, Any],
        message: Mapping[str, Any],
    ) -> str:
        ...


@runtime_checkable
class GenericStringStorage(Protocol):
    """Generic async string key/value store."""

    async def get_item(self, key: str) -> str | None:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...

    async def remove_item(self, key: str) -> None:
        ...


Endpoint = Union[str, Eip1193Provider]
StatusCallback = Callable[[BootstrapStatus], None]
