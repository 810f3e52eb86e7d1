"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup. A malformed setting (for example an unknown onchain
adapter) stops the API or worker before it serves anything.

Usage:
    from aid_escrow.config import get_settings
    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_ONCHAIN_ADAPTERS = ("mock", "soroban")


class Settings(BaseSettings):
    """Central configuration for the Aid Escrow API and worker."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_version: str = "0.1.0"
    service_name: str = "backend"

    # --- Database (PostgreSQL) ---
    database_url: str = (
        "postgresql+asyncpg://aid_escrow:aid_escrow_dev"
        "@localhost:5432/aid_escrow"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Redis / verification queue ---
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "verification"
    queue_concurrency: int = Field(default=5, ge=1, le=100)
    queue_max_attempts: int = Field(default=3, ge=1)
    queue_backoff_seconds: float = Field(default=2.0, ge=0)
    queue_poll_timeout_seconds: int = 1
    queue_result_ttl_seconds: int = 86400  # 24 hours

    # --- Onchain ---
    onchain_adapter: str = "mock"
    onchain_admin_address: str = "GADMIN0000000000000000000000000000000000000000000000000"
    onchain_token_address: str = "native"

    # --- Health ---
    chain_rpc_url: str = ""
    readiness_require_chain_rpc: bool = False
    health_probe_timeout_ms: int = Field(default=3000, gt=0)

    # --- Audit outbox relay ---
    audit_relay_interval_seconds: float = 5.0
    audit_relay_batch_size: int = 100

    # --- Rate limiting (POST /api/v1/verification) ---
    api_rate_limit: int = Field(default=100, ge=1)
    throttle_ttl: int = Field(default=60_000, gt=0)  # window, milliseconds
    rate_limit_storage_uri: str = "memory://"

    @field_validator("onchain_adapter")
    @classmethod
    def _normalize_adapter(cls, value: str) -> str:
        adapter = (value or "mock").strip().lower()
        if adapter not in SUPPORTED_ONCHAIN_ADAPTERS:
            raise ValueError(
                f"Unknown ONCHAIN_ADAPTER: {adapter}. "
                f"Supported values: {', '.join(SUPPORTED_ONCHAIN_ADAPTERS)}"
            )
        return adapter

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def health_probe_timeout_seconds(self) -> float:
        return self.health_probe_timeout_ms / 1000

    @property
    def throttle_window_seconds(self) -> int:
        """Throttle window rounded up to whole seconds."""
        return max(1, math.ceil(self.throttle_ttl / 1000))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
