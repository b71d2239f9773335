"""Shared fixtures for usage tests — billing APIs are faked with httpx.MockTransport."""

from __future__ import annotations

import pytest

from lkr.keys import KeyKind, KeyStore
from lkr.usage.cache import UsageCache


@pytest.fixture
def admin_store(store: KeyStore) -> KeyStore:
    store.set("openai:admin", "sk-admin-openai-0001", KeyKind.ADMIN)
    store.set("anthropic:admin", "sk-ant-admin-0002", KeyKind.ADMIN)
    return store


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> UsageCache:
    return UsageCache(ttl_seconds=3600, clock=clock)
