"""Build ready-to-use FHEVM engine instances.

Orchestrates endpoint resolution, the SDK lifecycle, the public key cache
and instance construction. Every network/SDK step is a suspension point
after which the cancellation token is checked; a cancelled attempt never
reports further status and never returns its instance.

Usage:
    factory = FhevmInstanceFactory()
    token = CancellationToken()
    instance = await factory.create(
        "https://rpc.sepolia.org",
        token=token,
        on_status_change=lambda s: print(s.value),
    )
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from eth_utils import is_address

from fhevm_kit.bootstrap.mock import LocalMockEngineProvider, MockEngineProvider, try_fetch_relayer_metadata
from fhevm_kit.bootstrap.public_keys import CachedPublicKey, PublicKeyStorage
from fhevm_kit.bootstrap.resolver import resolve
from fhevm_kit.bootstrap.sdk import SDKLifecycle, get_sdk_lifecycle
from fhevm_kit.core.cancellation import CancellationToken
from fhevm_kit.core.config import get_settings
from fhevm_kit.core.errors import ErrorCode, InvalidConfigError
from fhevm_kit.core.logging import bind_context
from fhevm_kit.core.types import (
    BootstrapStatus,
    ChainTarget,
    Endpoint,
    FhevmInstance,
    StatusCallback,
)

logger = logging.getLogger(__name__)


def check_is_address(value: Any) -> bool:
    """True for a well-formed hex address string."""
    return isinstance(value, str) and is_address(value)


class FhevmInstanceFactory:
    """Creates engine instances for a provider or RPC URL.

    Collaborators are injected so tests can substitute fakes; by default
    the process-wide SDK lifecycle and the configured key store are used.
    """

    def __init__(
        self,
        *,
        lifecycle: SDKLifecycle | None = None,
        key_storage: PublicKeyStorage | None = None,
        mock_provider: MockEngineProvider | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._key_storage = key_storage
        self._mock_provider = mock_provider or LocalMockEngineProvider()
        self._timeout = timeout
        self._transport = transport

    @property
    def lifecycle(self) -> SDKLifecycle:
        if self._lifecycle is None:
            self._lifecycle = get_sdk_lifecycle()
        return self._lifecycle

    @property
    def key_storage(self) -> PublicKeyStorage:
        if self._key_storage is None:
            self._key_storage = PublicKeyStorage()
        return self._key_storage

    async def create(
        self,
        provider: Endpoint,
        *,
        token: CancellationToken,
        mock_chains: Mapping[int, str] | None = None,
        on_status_change: StatusCallback | None = None,
    ) -> FhevmInstance:
        """Resolve ``provider`` and build an instance for it.

        Raises:
            FhevmAbortError: The token was cancelled at a suspension point.
            RpcError: The endpoint could not be queried.
            SdkUnavailableError: The relayer SDK could not be loaded/initialized.
            InvalidConfigError: The SDK's ACL address is malformed, or a mock
                chain has no RPC URL.
        """
        log = bind_context(logger, attempt_id=token.attempt_id)

        def notify(status: BootstrapStatus) -> None:
            if token.cancelled or on_status_change is None:
                return
            log.info("Bootstrap status: %s", status.value, extra={"status": status.value})
            on_status_change(status)

        target = await resolve(provider, mock_chains, timeout=self._timeout, transport=self._transport)
        token.raise_if_cancelled()
        log = bind_context(log, chain_id=target.chain_id)

        if target.is_mock:
            instance = await self._create_mock(target, token, notify, log)
            if instance is not None:
                return instance

        token.raise_if_cancelled()
        return await self._create_remote(provider, token, notify, log)

    async def _create_mock(
        self,
        target: ChainTarget,
        token: CancellationToken,
        notify: StatusCallback,
        log: logging.LoggerAdapter,
    ) -> FhevmInstance | None:
        if not target.rpc_url:
            raise InvalidConfigError(
                f"No RPC URL configured for mock chain {target.chain_id}",
                code=ErrorCode.INVALID_CONFIG,
            )
        metadata = await try_fetch_relayer_metadata(
            target.rpc_url, timeout=self._timeout, transport=self._transport
        )
        token.raise_if_cancelled()
        if metadata is None:
            log.warning("No FHEVM relayer metadata at %s, falling back to relayer SDK", target.rpc_url)
            return None

        notify(BootstrapStatus.CREATING)
        instance = await self._mock_provider.create_instance(target.rpc_url, target.chain_id, metadata)
        token.raise_if_cancelled()
        return instance

    async def _create_remote(
        self,
        provider: Endpoint,
        token: CancellationToken,
        notify: StatusCallback,
        log: logging.LoggerAdapter,
    ) -> FhevmInstance:
        lifecycle = self.lifecycle

        if not lifecycle.is_loaded():
            notify(BootstrapStatus.SDK_LOADING)
            await lifecycle.load()
            token.raise_if_cancelled()
            notify(BootstrapStatus.SDK_LOADED)

        if not lifecycle.is_initialized():
            notify(BootstrapStatus.SDK_INITIALIZING)
            await lifecycle.initialize()
            token.raise_if_cancelled()
            notify(BootstrapStatus.SDK_INITIALIZED)

        sdk = lifecycle.sdk
        network_config = dict(sdk.network_config)
        acl_address = network_config.get("aclContractAddress")
        if not check_is_address(acl_address):
            raise InvalidConfigError(f"Invalid address: {acl_address}")

        log = bind_context(log, acl_address=acl_address)

        try:
            cached = await self.key_storage.get(acl_address)
        except Exception as exc:
            log.warning("Public key cache unreadable, fetching fresh key: %s", exc)
            cached = CachedPublicKey()
        token.raise_if_cancelled()

        config: dict[str, Any] = {**network_config, "network": provider}
        if cached.is_complete:
            config["publicKey"] = cached.public_key
            config["publicParams"] = cached.public_params
            log.debug("Using cached public key")
        else:
            log.debug("Public key not cached, SDK will fetch it")

        notify(BootstrapStatus.CREATING)
        try:
            instance = await sdk.create_instance(config)
        except Exception:
            log.error("Failed to create FHEVM instance (cached key: %s), clearing cached key", cached.is_complete)
            try:
                await self.key_storage.clear(acl_address)
            except Exception as clear_exc:
                log.warning("Failed to clear cached public key: %s", clear_exc)
            raise

        # Refresh unconditionally so server-side key rotation is picked up.
        try:
            await self.key_storage.set(
                acl_address,
                instance.get_public_key(),
                instance.get_public_params(get_settings().public_params_bits),
            )
        except Exception as save_exc:
            log.warning("Failed to cache public key (non-fatal): %s", save_exc)

        token.raise_if_cancelled()
        return instance


async def create_fhevm_instance(
    provider: Endpoint,
    *,
    token: CancellationToken,
    mock_chains: Mapping[int, str] | None = None,
    on_status_change: StatusCallback | None = None,
) -> FhevmInstance:
    """Build an instance with the default factory collaborators."""
    return await FhevmInstanceFactory().create(
        provider,
        token=token,
        mock_chains=mock_chains,
        on_status_change=on_status_change,
    )
