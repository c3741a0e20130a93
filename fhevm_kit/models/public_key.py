"""Persistent public key material, one row per ACL contract address.

``public_key`` and ``public_params`` hold base64 text so the rows stay
portable across runtimes; an empty string means "nothing cached".
"""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fhevm_kit.models.base import Base

# Bumped whenever the stored encoding changes. Opening a store written
# with an older version clears every record.
PUBLIC_KEY_SCHEMA_VERSION = 2


class PublicKeyRecord(Base):
    __tablename__ = "fhevm_public_keys"

    acl_address: Mapped[str] = mapped_column(String(66), primary_key=True)
    public_key: Mapped[str] = mapped_column(Text, nullable=False, default="")
    public_params: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<PublicKeyRecord {self.acl_address}>"


class SchemaVersion(Base):
    """Single-row table recording the store's schema version."""

    __tablename__ = "fhevm_schema_version"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
