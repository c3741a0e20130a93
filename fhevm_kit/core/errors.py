"""Typed errors raised by the bootstrap subsystem.

Every error carries a machine-readable ``code`` so callers can branch on
the failure kind without parsing messages:

    try:
        instance = await factory.create(provider, token=token)
    except FhevmAbortError:
        pass  # superseded by a newer request, not a user-facing failure
    except FhevmError as exc:
        show(f"{exc.code}: {exc}")
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes attached to ``FhevmError``."""

    # Network / RPC
    ENDPOINT_UNREACHABLE = "ENDPOINT_UNREACHABLE"
    RPC_ERROR = "RPC_ERROR"
    CHAIN_ID_ERROR = "CHAIN_ID_ERROR"
    WEB3_CLIENTVERSION_ERROR = "WEB3_CLIENTVERSION_ERROR"
    FHEVM_RELAYER_METADATA_ERROR = "FHEVM_RELAYER_METADATA_ERROR"

    # SDK
    SDK_UNAVAILABLE = "SDK_UNAVAILABLE"

    # Configuration
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_CONFIG = "INVALID_CONFIG"

    # Control flow
    CANCELLED = "CANCELLED"


class FhevmError(Exception):
    """Base exception for bootstrap errors."""

    default_code: ErrorCode = ErrorCode.RPC_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class RpcError(FhevmError):
    """An RPC endpoint was unreachable or answered with an error."""


class SdkUnavailableError(FhevmError):
    """The relayer SDK is not loaded, not importable, or failed to initialize."""

    default_code = ErrorCode.SDK_UNAVAILABLE


class InvalidConfigError(FhevmError):
    """Configuration the kit was handed is unusable (bad address, missing URL, unsupported store)."""

    default_code = ErrorCode.INVALID_ADDRESS


class FhevmAbortError(FhevmError):
    """The bootstrap attempt was cancelled by a newer request."""

    default_code = ErrorCode.CANCELLED

    def __init__(self, message: str = "FHEVM operation was cancelled") -> None:
        super().__init__(message)
