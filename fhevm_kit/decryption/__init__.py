"""Decryption authorization: EIP-712 credentials and their cache."""

from fhevm_kit.decryption.signature import FhevmDecryptionSignature, load_or_sign

__all__ = ["FhevmDecryptionSignature", "load_or_sign"]
