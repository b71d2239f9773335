"""
Usage aggregation — cost reports for providers with a registered admin key.

Usage:
    from lkr.keys import KeyStore
    from lkr.usage import UsageCache, fetch_cost, available_providers

    store = KeyStore.default()
    cache = UsageCache.from_config()
    for provider in available_providers(store):
        report = await fetch_cost(store, provider, cache)
        print(provider, format_cost(report.total_cost_cents))
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from lkr.config import get_config
from lkr.errors import AdminKeyRequired, BatchError, KeyNotFound, LkrError, UsageError
from lkr.keys import KeyKind, KeyStore, SecretValue
from lkr.usage.cache import UsageCache
from lkr.usage.models import CostReport
from lkr.usage.providers import FETCHERS, SUPPORTED_PROVIDERS

logger = logging.getLogger(__name__)


@dataclass
class UsageBatch:
    """Result of fetching several providers: per-provider reports and errors."""

    reports: dict[str, CostReport] = field(default_factory=dict)
    errors: dict[str, LkrError] = field(default_factory=dict)

    @property
    def total_cost_cents(self) -> int:
        return sum(r.total_cost_cents for r in self.reports.values())


def admin_key_name(provider: str) -> str:
    return f"{provider}:admin"


def get_admin_key(store: KeyStore, provider: str) -> SecretValue:
    """Retrieve `<provider>:admin`, which must be stored with kind=admin."""
    key_name = admin_key_name(provider)
    try:
        value, kind = store.get(key_name)
    except KeyNotFound:
        raise AdminKeyRequired(provider) from None
    if kind != KeyKind.ADMIN:
        value.wipe()
        raise UsageError(
            f"Key '{key_name}' is not an admin key. "
            f"Re-register with `lkr set {key_name} --kind admin --force`."
        )
    return value


def available_providers(store: KeyStore) -> list[str]:
    """Supported providers that have an admin key registered.

    A missing key is skipped; any other backend error (e.g. a locked
    keychain) propagates so "no admin keys" is distinguishable from
    "keychain unavailable".
    """
    providers = []
    for provider in SUPPORTED_PROVIDERS:
        try:
            value, kind = store.get(admin_key_name(provider))
        except KeyNotFound:
            continue
        value.wipe()
        if kind == KeyKind.ADMIN:
            providers.append(provider)
    return providers


def _base_url(provider: str) -> str:
    usage_cfg = get_config().usage
    return {
        "openai": usage_cfg.openai_base_url,
        "anthropic": usage_cfg.anthropic_base_url,
    }[provider]


async def fetch_cost(
    store: KeyStore,
    provider: str,
    cache: UsageCache,
    *,
    refresh: bool = False,
    client: httpx.AsyncClient | None = None,
) -> CostReport:
    """Return the month-to-date CostReport for a provider.

    Served from cache when a fresh entry exists, unless refresh=True.
    `client` lets callers share (or tests fake) the HTTP client; otherwise a
    client with the configured timeout is created for this call.
    """
    if not refresh:
        cached = cache.get(provider)
        if cached is not None:
            logger.debug("Usage cache hit for %s", provider)
            return cached

    fetcher = FETCHERS.get(provider)
    if fetcher is None:
        raise UsageError(
            f"Unknown provider '{provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    admin_key = get_admin_key(store, provider)
    try:
        if client is not None:
            report = await fetcher(admin_key, client, base_url=_base_url(provider))
        else:
            timeout = get_config().usage.http_timeout_seconds
            async with httpx.AsyncClient(timeout=timeout) as owned:
                report = await fetcher(admin_key, owned, base_url=_base_url(provider))
    finally:
        admin_key.wipe()

    cache.set(provider, report)
    logger.info(
        "Fetched %s usage: %d line items, total %s",
        provider,
        len(report.line_items),
        format_cost(report.total_cost_cents),
    )
    return report


async def fetch_all(
    store: KeyStore,
    providers: Iterable[str],
    cache: UsageCache,
    *,
    refresh: bool = False,
    client: httpx.AsyncClient | None = None,
) -> UsageBatch:
    """Fetch several providers concurrently.

    Per-provider failures are collected in UsageBatch.errors. If every
    provider fails, BatchError is raised.
    """
    providers = list(dict.fromkeys(providers))
    results = await asyncio.gather(
        *(fetch_cost(store, p, cache, refresh=refresh, client=client) for p in providers),
        return_exceptions=True,
    )

    batch = UsageBatch()
    for provider, result in zip(providers, results, strict=True):
        if isinstance(result, LkrError):
            logger.warning("Usage fetch failed for %s: %s", provider, result)
            batch.errors[provider] = result
        elif isinstance(result, BaseException):
            raise result
        else:
            batch.reports[provider] = result

    if providers and not batch.reports:
        raise BatchError(batch.errors)
    return batch


def format_cost(cents: float) -> str:
    """Format cents as a dollar string (1350 -> "$13.50")."""
    if not math.isfinite(cents):
        return "$-.--"
    return f"${cents / 100:.2f}"
