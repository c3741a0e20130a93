"""Engine instance bootstrap: resolution, SDK lifecycle, key cache, factory."""

from fhevm_kit.bootstrap.factory import FhevmInstanceFactory, create_fhevm_instance
from fhevm_kit.bootstrap.public_keys import PublicKeyStorage
from fhevm_kit.bootstrap.resolver import resolve
from fhevm_kit.bootstrap.sdk import SDKLifecycle, get_sdk_lifecycle
from fhevm_kit.bootstrap.session import FhevmSession

__all__ = [
    "FhevmInstanceFactory",
    "FhevmSession",
    "PublicKeyStorage",
    "SDKLifecycle",
    "create_fhevm_instance",
    "get_sdk_lifecycle",
    "resolve",
]
