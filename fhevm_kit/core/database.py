"""Database connection management for the public key store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
    create_async_engine,
)

from fhevm_kit.core.config import get_settings

# ── Lazy-initialized engine ───────────────────────────────────────────────────
# Created on first access rather than at import time, allowing tests to
# override settings before any DB file is opened.

_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """Return the shared async engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.public_key_db_url,
            echo=settings.public_key_db_echo,
        )
    return _engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine``."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def reset_engine() -> None:
    """Reset the shared engine so tests can point at a different DB."""
    global _engine
    _engine = None
