"""Shared fixtures for the fhevm-kit test suite."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Mapping, Sequence

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from fhevm_kit.bootstrap.public_keys import PublicKeyStorage
from fhevm_kit.bootstrap.sdk import SDKLifecycle, reset_sdk_lifecycle
from fhevm_kit.core.config import get_settings
from fhevm_kit.core.database import reset_engine
from fhevm_kit.core.storage import InMemoryStringStorage
from fhevm_kit.decryption.eip712 import build_user_decrypt_eip712

ACL_ADDRESS = "0x687820221192c5b662b25367f70076a37bc79b6c"
KMS_VERIFIER_ADDRESS = "0x1364cbbf2cdf5032c47d8226a6f6fbd2afcdacac"
INPUT_VERIFIER_ADDRESS = "0xbc91f3dad1a5f19f8390c400196e58073b6a0bc4"
DECRYPTION_VERIFIER_ADDRESS = "0xb6e160b1ff80d67bfe90a85ee06ce0a2613607d1"
USER_ADDRESS = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
CONTRACT_A = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
CONTRACT_B = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"

SEPOLIA_CHAIN_ID_HEX = "0xaa36a7"
HARDHAT_CHAIN_ID_HEX = "0x7a69"

HARDHAT_METADATA = {
    "ACLAddress": ACL_ADDRESS,
    "InputVerifierAddress": INPUT_VERIFIER_ADDRESS,
    "KMSVerifierAddress": KMS_VERIFIER_ADDRESS,
}


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Clear cached settings, the shared engine and the SDK singleton around every test."""
    get_settings.cache_clear()
    reset_sdk_lifecycle()
    reset_engine()
    yield
    get_settings.cache_clear()
    reset_sdk_lifecycle()
    reset_engine()


# ── RPC doubles ──────────────────────────────────────────────────────────────


def rpc_transport(
    responses: Mapping[str, Any],
    calls: list[str] | None = None,
) -> httpx.MockTransport:
    """MockTransport answering JSON-RPC methods from ``responses``.

    A value that is an exception is raised from the transport; a missing
    method yields a JSON-RPC "method not found" error.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        if calls is not None:
            calls.append(method)
        if method not in responses:
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {"code": -32601, "message": f"Method {method} not found"},
                },
            )
        value = responses[method]
        if isinstance(value, Exception):
            raise value
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": value})

    return httpx.MockTransport(handler)


class FakeProvider:
    """Injected EIP-1193 provider double."""

    def __init__(self, chain_id_hex: str) -> None:
        self.chain_id_hex = chain_id_hex
        self.calls: list[str] = []

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        self.calls.append(method)
        if method == "eth_chainId":
            return self.chain_id_hex
        raise NotImplementedError(method)


# ── Engine / SDK doubles ─────────────────────────────────────────────────────


class FakeInstance:
    """Relayer engine instance double."""

    def __init__(self, public_key: bytes = b"server-public-key", public_params: bytes = b"server-params") -> None:
        self.public_key = public_key
        self.public_params = public_params
        self.params_bits: list[int] = []
        self.keypair_calls = 0
        self.fail_keypair = False

    def generate_keypair(self) -> dict[str, str]:
        self.keypair_calls += 1
        if self.fail_keypair:
            raise RuntimeError("keypair generation failed")
        return {"publicKey": f"0xpub{self.keypair_calls}", "privateKey": f"0xpriv{self.keypair_calls}"}

    def create_eip712(self, public_key, contract_addresses, start_timestamp, duration_days):
        return build_user_decrypt_eip712(
            chain_id=11155111,
            verifying_contract=DECRYPTION_VERIFIER_ADDRESS,
            public_key=public_key,
            contract_addresses=contract_addresses,
            start_timestamp=start_timestamp,
            duration_days=duration_days,
        )

    def get_public_key(self) -> bytes:
        return self.public_key

    def get_public_params(self, bits: int) -> bytes:
        self.params_bits.append(bits)
        return self.public_params

    async def user_decrypt(self, handles, *args) -> dict[str, int]:
        return {h["handle"]: 0 for h in handles}


class FakeRelayerSDK:
    """Relayer SDK double recording init/create calls."""

    def __init__(
        self,
        instance: FakeInstance | None = None,
        acl_address: Any = ACL_ADDRESS,
        init_result: bool = True,
        create_error: Exception | None = None,
    ) -> None:
        self.instance = instance or FakeInstance()
        self.network_config = {
            "aclContractAddress": acl_address,
            "kmsContractAddress": KMS_VERIFIER_ADDRESS,
            "inputVerifierContractAddress": INPUT_VERIFIER_ADDRESS,
            "chainId": 11155111,
        }
        self.init_result = init_result
        self.create_error = create_error
        self.init_calls = 0
        self.create_configs: list[dict[str, Any]] = []

    async def init_sdk(self, options=None) -> bool:
        self.init_calls += 1
        return self.init_result

    async def create_instance(self, config):
        self.create_configs.append(dict(config))
        if self.create_error is not None:
            raise self.create_error
        return self.instance


class CountingLoader:
    """SDK loader double that counts invocations."""

    def __init__(self, sdk: FakeRelayerSDK, delay: float = 0.0) -> None:
        self.sdk = sdk
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> FakeRelayerSDK:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.sdk


class FakeSigner:
    """Wallet signer double."""

    def __init__(self, address: str = USER_ADDRESS, reject: bool = False) -> None:
        self.address = address
        self.reject = reject
        self.sign_calls: list[tuple[dict, dict, dict]] = []

    async def get_address(self) -> str:
        return self.address

    async def sign_typed_data(self, domain, types, message) -> str:
        if self.reject:
            raise PermissionError("user rejected signing")
        self.sign_calls.append((dict(domain), dict(types), dict(message)))
        return "0x" + "ab" * 65


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_sdk() -> FakeRelayerSDK:
    return FakeRelayerSDK()


@pytest.fixture
def loader(fake_sdk: FakeRelayerSDK) -> CountingLoader:
    return CountingLoader(fake_sdk)


@pytest.fixture
def lifecycle(loader: CountingLoader) -> SDKLifecycle:
    return SDKLifecycle(loader=loader)


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'public-keys.db'}"


@pytest_asyncio.fixture
async def db_engine(db_url: str):
    engine = create_async_engine(db_url)
    yield engine
    await engine.dispose()


@pytest.fixture
def key_storage(db_engine) -> PublicKeyStorage:
    return PublicKeyStorage(engine=db_engine)


@pytest.fixture
def string_storage() -> InMemoryStringStorage:
    return InMemoryStringStorage()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()
