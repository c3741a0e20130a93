"""Process-wide relayer SDK lifecycle.

The relayer SDK is expensive to fetch and initialize, so it is loaded at
most once and initialized at most once per process. Phases only move
forward: not-loaded -> loaded -> initialized.

Concurrent callers share the in-flight load/init: each phase is guarded by
an ``asyncio.Lock`` and re-checks its flag after acquiring it, so a second
caller waits for the first instead of fetching again. The locks belong to
the event loop that first needs them and are replaced when the lifecycle is
used from another loop (e.g. successive ``asyncio.run`` calls).

Usage:
    lifecycle = get_sdk_lifecycle()
    await lifecycle.load()
    await lifecycle.initialize()
    instance = await lifecycle.sdk.create_instance(config)
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any, Awaitable, Callable, Mapping

from fhevm_kit.core.config import get_settings
from fhevm_kit.core.errors import SdkUnavailableError
from fhevm_kit.core.types import RelayerSDK

logger = logging.getLogger(__name__)

SDKLoader = Callable[[], Awaitable[RelayerSDK]]


def import_sdk_loader(module_name: str | None = None) -> SDKLoader:
    """Return a loader that imports the relayer SDK module by name.

    The module (or an ``sdk`` attribute on it, when present) must satisfy
    the ``RelayerSDK`` protocol.
    """
    name = module_name or get_settings().relayer_sdk_module

    async def _load() -> RelayerSDK:
        try:
            module = await asyncio.to_thread(importlib.import_module, name)
        except ImportError as exc:
            raise SdkUnavailableError(f"Relayer SDK module {name!r} is not available", cause=exc) from exc
        return getattr(module, "sdk", module)

    return _load


class SDKLifecycle:
    """Owns the loaded SDK object and its initialized flag."""

    def __init__(self, loader: SDKLoader | None = None) -> None:
        self._loader = loader or import_sdk_loader()
        self._sdk: RelayerSDK | None = None
        self._initialized = False
        self._lock_loop: asyncio.AbstractEventLoop | None = None
        self._load_lock: asyncio.Lock | None = None
        self._init_lock: asyncio.Lock | None = None

    def _locks(self) -> tuple[asyncio.Lock, asyncio.Lock]:
        loop = asyncio.get_running_loop()
        if self._lock_loop is not loop or self._load_lock is None or self._init_lock is None:
            self._lock_loop = loop
            self._load_lock = asyncio.Lock()
            self._init_lock = asyncio.Lock()
        return self._load_lock, self._init_lock

    @property
    def sdk(self) -> RelayerSDK:
        """The loaded SDK entry point."""
        if self._sdk is None:
            raise SdkUnavailableError("Relayer SDK is not loaded")
        return self._sdk

    def is_loaded(self) -> bool:
        return self._sdk is not None

    def is_initialized(self) -> bool:
        return self._initialized

    async def load(self) -> RelayerSDK:
        """Load the SDK once; later and concurrent calls reuse it."""
        if self._sdk is not None:
            return self._sdk
        load_lock, _ = self._locks()
        async with load_lock:
            if self._sdk is None:
                logger.info("Loading relayer SDK")
                sdk = await self._loader()
                if sdk is None:
                    raise SdkUnavailableError("Relayer SDK loader returned nothing")
                self._sdk = sdk
                logger.info("Relayer SDK loaded")
        return self._sdk

    async def initialize(self, options: Mapping[str, Any] | None = None) -> bool:
        """Initialize the loaded SDK once.

        Raises:
            SdkUnavailableError: If called before ``load()`` succeeded, or
                if the SDK reports that initialization failed.
        """
        if self._initialized:
            return True
        if self._sdk is None:
            raise SdkUnavailableError("Relayer SDK is not available; load() it first")
        _, init_lock = self._locks()
        async with init_lock:
            if not self._initialized:
                logger.info("Initializing relayer SDK")
                result = await self._sdk.init_sdk(dict(options) if options else None)
                if not result:
                    raise SdkUnavailableError("Relayer SDK init_sdk failed")
                self._initialized = True
                logger.info("Relayer SDK initialized")
        return True


# ── Singleton ────────────────────────────────────────────────────────────────

_lifecycle_instance: SDKLifecycle | None = None


def get_sdk_lifecycle() -> SDKLifecycle:
    """Get the process-wide SDKLifecycle singleton."""
    global _lifecycle_instance
    if _lifecycle_instance is None:
        _lifecycle_instance = SDKLifecycle()
    return _lifecycle_instance


def reset_sdk_lifecycle() -> None:
    """Drop the process-wide lifecycle so the next caller starts fresh."""
    global _lifecycle_instance
    _lifecycle_instance = None
