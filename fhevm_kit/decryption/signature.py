"""User decryption credentials (EIP-712 signed), cached per user and contract set.

A credential binds an ephemeral keypair to a sorted set of contract
addresses for ``durationDays`` from ``startTimestamp``. It is stored as
JSON in a string store under
``<prefix>_<userAddress>_<sortedAddresses joined by "_">`` and replaced,
never mutated, once it expires.

Usage:
    sig = await load_or_sign(instance, [contract_address], signer, storage)
    if sig is None:
        return  # authorization unavailable, do not decrypt
    values = await instance.user_decrypt(handles, *sig.user_decrypt_args())
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fhevm_kit.core.config import get_settings
from fhevm_kit.core.types import FhevmInstance, GenericStringStorage, Signer
from fhevm_kit.decryption.eip712 import USER_DECRYPT_PRIMARY_TYPE

logger = logging.getLogger(__name__)

DEFAULT_DURATION_DAYS = 365
SECONDS_PER_DAY = 24 * 60 * 60


def _timestamp_now() -> int:
    return int(time.time())


def sort_contract_addresses(contract_addresses: Sequence[str]) -> list[str]:
    """Deduplicated, sorted copy of ``contract_addresses``."""
    return sorted(set(contract_addresses))


def build_storage_key(
    user_address: str,
    contract_addresses: Sequence[str],
    prefix: str | None = None,
) -> str:
    prefix = prefix or get_settings().decryption_signature_prefix
    joined = "_".join(sort_contract_addresses(contract_addresses))
    return f"{prefix}_{user_address}_{joined}"


class FhevmDecryptionSignature(BaseModel):
    """A signed decryption authorization."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    private_key: str = Field(alias="privateKey")
    public_key: str = Field(alias="publicKey")
    signature: str
    contract_addresses: list[str] = Field(alias="contractAddresses")
    user_address: str = Field(alias="userAddress")
    start_timestamp: int = Field(alias="startTimestamp")
    duration_days: int = Field(alias="durationDays")

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def is_valid(self, now: int | None = None) -> bool:
        return (now if now is not None else _timestamp_now()) < self.expires_at

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> FhevmDecryptionSignature:
        return cls.model_validate_json(raw)

    def user_decrypt_args(self) -> tuple:
        """Positional credential arguments for ``instance.user_decrypt``."""
        return (
            self.private_key,
            self.public_key,
            self.signature,
            self.contract_addresses,
            self.user_address,
            self.start_timestamp,
            self.duration_days,
        )


async def _load_cached(
    storage: GenericStringStorage, storage_key: str
) -> FhevmDecryptionSignature | None:
    stored = await storage.get_item(storage_key)
    if not stored:
        return None
    try:
        parsed = FhevmDecryptionSignature.from_json(stored)
    except ValidationError as exc:
        logger.info("Invalid cached decryption signature: %s", exc)
        return None
    if parsed.is_valid():
        logger.debug("Using cached decryption signature")
        return parsed
    logger.info("Cached decryption signature expired")
    return None


async def load_or_sign(
    instance: FhevmInstance,
    contract_addresses: Sequence[str],
    signer: Signer,
    storage: GenericStringStorage,
) -> FhevmDecryptionSignature | None:
    """Return a valid cached credential, or sign and store a new one.

    Returns None if the signer or the instance fails; callers must then
    skip decryption.
    """
    user_address = await signer.get_address()
    storage_key = build_storage_key(user_address, contract_addresses)

    cached = await _load_cached(storage, storage_key)
    if cached is not None:
        return cached

    try:
        logger.info("Creating new decryption signature", extra={"user_address": user_address})
        keypair = instance.generate_keypair()
        public_key, private_key = keypair["publicKey"], keypair["privateKey"]

        start_timestamp = _timestamp_now()
        sorted_addresses = sort_contract_addresses(contract_addresses)

        eip712 = instance.create_eip712(
            public_key, sorted_addresses, start_timestamp, DEFAULT_DURATION_DAYS
        )
        signature = await signer.sign_typed_data(
            eip712["domain"],
            {USER_DECRYPT_PRIMARY_TYPE: eip712["types"][USER_DECRYPT_PRIMARY_TYPE]},
            eip712["message"],
        )

        result = FhevmDecryptionSignature(
            private_key=private_key,
            public_key=public_key,
            signature=signature,
            contract_addresses=sorted_addresses,
            user_address=user_address,
            start_timestamp=start_timestamp,
            duration_days=DEFAULT_DURATION_DAYS,
        )
        await storage.set_item(storage_key, result.to_json())
        logger.info("Decryption signature cached", extra={"user_address": user_address})
        return result
    except Exception as exc:
        logger.error(
            "Failed to create decryption signature: %s",
            exc,
            extra={"user_address": user_address},
        )
        return None
