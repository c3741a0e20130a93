"""fhevm-kit: bootstrap FHEVM engine instances and user decryption credentials."""

from fhevm_kit.bootstrap import (
    FhevmInstanceFactory,
    FhevmSession,
    PublicKeyStorage,
    SDKLifecycle,
    create_fhevm_instance,
)
from fhevm_kit.core.cancellation import CancellationToken
from fhevm_kit.core.errors import (
    ErrorCode,
    FhevmAbortError,
    FhevmError,
    InvalidConfigError,
    RpcError,
    SdkUnavailableError,
)
from fhevm_kit.core.logging import setup_logging
from fhevm_kit.core.types import BootstrapMode, BootstrapStatus, ChainTarget
from fhevm_kit.decryption import FhevmDecryptionSignature, load_or_sign

__version__ = "0.1.0"

__all__ = [
    "BootstrapMode",
    "BootstrapStatus",
    "CancellationToken",
    "ChainTarget",
    "ErrorCode",
    "FhevmAbortError",
    "FhevmDecryptionSignature",
    "FhevmError",
    "FhevmInstanceFactory",
    "FhevmSession",
    "InvalidConfigError",
    "PublicKeyStorage",
    "RpcError",
    "SDKLifecycle",
    "SdkUnavailableError",
    "create_fhevm_instance",
    "load_or_sign",
    "setup_logging",
]
