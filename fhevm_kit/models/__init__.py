"""Database models package."""

from fhevm_kit.models.base import Base  # noqa: F401
from fhevm_kit.models.public_key import (  # noqa: F401
    PUBLIC_KEY_SCHEMA_VERSION,
    PublicKeyRecord,
    SchemaVersion,
)

__all__ = [
    "Base",
    "PUBLIC_KEY_SCHEMA_VERSION",
    "PublicKeyRecord",
    "SchemaVersion",
]
