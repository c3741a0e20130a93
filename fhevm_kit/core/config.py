"""Core configuration for the FHEVM bootstrap kit."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FHEVM_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Network resolution ───────────────────────────────────────────────
    mock_chains: dict[int, str] = Field(
        default_factory=lambda: {31337: "http://localhost:8545"}
    )
    rpc_timeout_seconds: float = 10.0

    # ── Relayer SDK ──────────────────────────────────────────────────────
    relayer_sdk_module: str = "fhevm_relayer_sdk"
    public_params_bits: int = 2048

    # ── Public key store ─────────────────────────────────────────────────
    public_key_db_url: str = "sqlite+aiosqlite:///fhevm-public-keys.db"
    public_key_db_echo: bool = False

    # ── Decryption signature store ───────────────────────────────────────
    redis_url: str = "redis://localhost:6379/0"
    decryption_signature_prefix: str = "fhevm_decryption_sig"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
