"""Persistent cache of engine public key material per ACL contract address.

Values are stored as base64 text and decoded back to raw bytes on read.
A record that fails to decode is overwritten with empty values and
reported as a miss, never as an error.

The store is version-tagged. Opening a store written by an older schema
clears every record instead of reinterpreting it, since old rows use a
different encoding and misreading them would corrupt key material. The
cost is one extra key fetch.

Usage:
    store = PublicKeyStorage()
    cached = await store.get(acl_address)
    if cached.is_complete:
        config["publicKey"] = cached.public_key
    await store.set(acl_address, instance.get_public_key(), instance.get_public_params(2048))
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import weakref
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine

from fhevm_kit.core.database import get_engine, make_session_factory
from fhevm_kit.core.errors import ErrorCode, InvalidConfigError
from fhevm_kit.models import PUBLIC_KEY_SCHEMA_VERSION, Base, PublicKeyRecord, SchemaVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedPublicKey:
    """Result of a cache lookup; ``None`` fields mean miss."""

    public_key: bytes | None = None
    public_params: bytes | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.public_key) and bool(self.public_params)


def encode_key_material(value: bytes | bytearray | str | None) -> str:
    """Normalize raw bytes or already-encoded text to the stored encoding."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


def decode_key_material(value: str) -> bytes:
    """Decode stored base64 text; raises ``ValueError`` on corrupt input."""
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"Invalid base64 key material: {exc}") from exc


_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}

# Per event loop, then per engine: every store on one engine shares the lock,
# and a lock is never awaited from a loop it was not created in.
_open_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[int, asyncio.Lock]] = (
    weakref.WeakKeyDictionary()
)


def _open_lock_for(engine: AsyncEngine) -> asyncio.Lock:
    locks = _open_locks.setdefault(asyncio.get_running_loop(), {})
    return locks.setdefault(id(engine), asyncio.Lock())


class PublicKeyStorage:
    """Async SQL-backed public key cache keyed by ACL address.

    Any number of stores may share one engine. Schema setup is serialized
    per engine and writes are single-statement upserts, so concurrent
    bootstraps on a cold database both succeed and the last write wins.
    Only sqlite and postgresql engines are supported.
    """

    def __init__(self, engine: AsyncEngine | None = None) -> None:
        self._engine = engine or get_engine()
        dialect = self._engine.dialect.name
        if dialect not in _UPSERT_DIALECTS:
            raise InvalidConfigError(
                f"Public key store does not support the {dialect!r} database dialect",
                code=ErrorCode.INVALID_CONFIG,
            )
        self._insert = _UPSERT_DIALECTS[dialect]
        self._session_factory = make_session_factory(self._engine)
        self._ready = False

    def _upsert(self, model, values: dict, key: str):
        stmt = self._insert(model).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[key],
            set_={name: stmt.excluded[name] for name in values if name != key},
        )

    async def _create_schema(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except OperationalError as exc:
            # Lost a CREATE race with another process; the retry sees the tables.
            logger.debug("Public key schema creation raced, retrying: %s", exc)
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def open(self) -> None:
        """Create the schema and apply version upgrades once."""
        if self._ready:
            return
        async with _open_lock_for(self._engine):
            if self._ready:
                return
            await self._create_schema()

            async with self._session_factory() as session:
                row = await session.get(SchemaVersion, 1)
                old_version = row.version if row is not None else 0
                if old_version < PUBLIC_KEY_SCHEMA_VERSION:
                    await self._upgrade(session, old_version)
                    await session.execute(
                        self._upsert(SchemaVersion, {"id": 1, "version": PUBLIC_KEY_SCHEMA_VERSION}, "id")
                    )
                    await session.commit()
            self._ready = True

    async def _upgrade(self, session, old_version: int) -> None:
        if old_version < 2:
            result = await session.execute(delete(PublicKeyRecord))
            if result.rowcount:
                logger.info(
                    "Cleared %d cached public keys during schema upgrade v%d -> v%d",
                    result.rowcount,
                    old_version,
                    PUBLIC_KEY_SCHEMA_VERSION,
                )

    async def get(self, acl_address: str) -> CachedPublicKey:
        """Return decoded key material, or an empty result on miss/corruption."""
        await self.open()
        async with self._session_factory() as session:
            record = await session.get(PublicKeyRecord, acl_address)
            if record is None or not record.public_key or not record.public_params:
                return CachedPublicKey()

            if not isinstance(record.public_key, str) or not isinstance(record.public_params, str):
                logger.warning(
                    "Cached public key is in an old format, clearing",
                    extra={"acl_address": acl_address},
                )
                stored_key = stored_params = None
            else:
                stored_key, stored_params = record.public_key, record.public_params

        if stored_key is None:
            await self.clear(acl_address)
            return CachedPublicKey()

        try:
            return CachedPublicKey(
                public_key=decode_key_material(stored_key),
                public_params=decode_key_material(stored_params),
            )
        except ValueError as exc:
            logger.warning(
                "Failed to decode cached public key, clearing: %s",
                exc,
                extra={"acl_address": acl_address},
            )
            await self.clear(acl_address)
            return CachedPublicKey()

    async def set(
        self,
        acl_address: str,
        public_key: bytes | str | None,
        public_params: bytes | str | None,
    ) -> None:
        """Upsert the single record for ``acl_address``."""
        await self.open()
        values = {
            "acl_address": acl_address,
            "public_key": encode_key_material(public_key),
            "public_params": encode_key_material(public_params),
        }
        async with self._session_factory() as session:
            await session.execute(self._upsert(PublicKeyRecord, values, "acl_address"))
            await session.commit()

    async def clear(self, acl_address: str) -> None:
        """Overwrite the record for ``acl_address`` with empty values."""
        await self.set(acl_address, "", "")

    async def count(self) -> int:
        """Number of stored records (including cleared ones)."""
        await self.open()
        async with self._session_factory() as session:
            result = await session.execute(select(PublicKeyRecord.acl_address))
            return len(result.all())
