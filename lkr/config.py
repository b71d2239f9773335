"""
Centralized configuration for LKR.

All configuration is loaded from environment variables with sensible defaults.
The keychain service name is NOT configurable: it is fixed per release line.

Usage:
    from lkr.config import get_config
    cfg = get_config()
    print(cfg.backend)                    # "keychain"
    print(cfg.usage.cache_ttl_seconds)    # 3600
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

# Keychain service name shared by every LKR front-end.
# NEVER change this value once keys are stored: entries written under a
# different service name become invisible to LKR.
SERVICE_NAME = "com.llm-key-ring"

BACKEND_KINDS = ("keychain", "memory")


@dataclass(frozen=True)
class UsageConfig:
    """Billing API client parameters."""

    cache_ttl_seconds: int = 3600
    http_timeout_seconds: float = 30.0
    openai_base_url: str = "https://api.openai.com"
    anthropic_base_url: str = "https://api.anthropic.com"


@dataclass(frozen=True)
class Config:
    """Top-level LKR configuration."""

    service_name: str = SERVICE_NAME
    backend: str = "keychain"  # keychain | memory
    log_level: str = "WARNING"
    usage: UsageConfig = field(default_factory=UsageConfig)


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    backend = os.environ.get("LKR_BACKEND", "keychain").strip().lower()
    if backend not in BACKEND_KINDS:
        raise ValueError(f"LKR_BACKEND must be one of {', '.join(BACKEND_KINDS)}, got {backend!r}")

    usage = UsageConfig(
        cache_ttl_seconds=int(os.environ.get("LKR_USAGE_CACHE_TTL", "3600")),
        http_timeout_seconds=float(os.environ.get("LKR_HTTP_TIMEOUT", "30")),
        openai_base_url=os.environ.get("LKR_OPENAI_BASE_URL", "https://api.openai.com").rstrip("/"),
        anthropic_base_url=os.environ.get(
            "LKR_ANTHROPIC_BASE_URL", "https://api.anthropic.com"
        ).rstrip("/"),
    )

    return Config(
        backend=backend,
        log_level=os.environ.get("LKR_LOG_LEVEL", "WARNING").upper(),
        usage=usage,
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
