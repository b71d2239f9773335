"""
Root-level shared test fixtures.

Inherited by the keys, template, and usage suites. Every store here is backed
by MemoryBackend; no test touches the host keychain.
"""

from __future__ import annotations

import pytest

from lkr.config import reset_config
from lkr.keys import KeyKind, KeyStore, MemoryBackend


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove LKR env vars that leak between tests and reset the config singleton."""
    for key in [
        "LKR_BACKEND",
        "LKR_USAGE_CACHE_TTL",
        "LKR_HTTP_TIMEOUT",
        "LKR_OPENAI_BASE_URL",
        "LKR_ANTHROPIC_BASE_URL",
        "LKR_LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> KeyStore:
    """Empty in-memory key store."""
    return KeyStore(backend)


@pytest.fixture
def seeded_store(store: KeyStore) -> KeyStore:
    """Store with two runtime keys and one admin key."""
    store.set("openai:prod", "sk-test-openai-key-12345678", KeyKind.RUNTIME)
    store.set("anthropic:main", "sk-ant-test-key-87654321", KeyKind.RUNTIME)
    store.set("openai:admin", "sk-admin-openai-secret", KeyKind.ADMIN)
    return store
