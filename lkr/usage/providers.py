"""
Provider billing API clients.

Each fetcher takes the provider's admin key as a SecretValue, issues one
request for the current month-to-date, wipes the key as soon as the request
returns, and only then checks the status and parses the body.

    openai      GET /v1/organization/costs            (Authorization: Bearer)
    anthropic   GET /v1/organizations/cost_report     (x-api-key)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from lkr.errors import AuthenticationError, HttpError, UsageError
from lkr.keys import SecretValue
from lkr.usage.models import (
    AnthropicCostResponse,
    CostLineItem,
    CostReport,
    OpenAiCostsResponse,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic")

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com",
    "anthropic": "https://api.anthropic.com",
}

PROVIDER_LABELS = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
}

AUTH_GUIDANCE = {
    "openai": (
        "OpenAI admin key is invalid or expired. "
        "Create a new one at: https://platform.openai.com/settings/organization/admin-keys"
    ),
    "anthropic": (
        "Anthropic admin key is invalid or requires an Organization account.\n"
        "  Individual accounts cannot use the Usage API.\n"
        "  View your usage at: https://console.anthropic.com/settings/billing"
    ),
}

ANTHROPIC_VERSION = "2023-06-01"

_M = TypeVar("_M", bound=BaseModel)


def current_billing_period(today: date | None = None) -> tuple[date, date]:
    """Return (first day of the month, today), in UTC."""
    if today is None:
        today = datetime.now(UTC).date()
    return today.replace(day=1), today


def _midnight_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _out_of_range(provider: str, amount: object) -> UsageError:
    return UsageError(f"{PROVIDER_LABELS[provider]} reported an amount out of range: {amount}")


def _add_cost(costs: dict[str, Decimal], desc: str, cents: Decimal, provider: str) -> None:
    try:
        costs[desc] = costs.get(desc, Decimal(0)) + cents
    except ArithmeticError:
        raise _out_of_range(provider, cents) from None


def _to_cents(amount: Decimal, provider: str) -> int:
    # quantize raises InvalidOperation past the context precision
    try:
        return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (ArithmeticError, ValueError):
        raise _out_of_range(provider, amount) from None


def _sorted_items(costs: dict[str, Decimal], provider: str) -> list[CostLineItem]:
    """Line items by cost descending (ties by description)."""
    items = [
        CostLineItem(description=d, cost_cents=_to_cents(c, provider)) for d, c in costs.items()
    ]
    items.sort(key=lambda i: (-i.cost_cents, i.description))
    return items


async def _send(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    params: list[tuple[str, str | int]],
    headers: dict[str, str],
    admin_key: SecretValue,
) -> httpx.Response:
    """Issue the request, then wipe the admin key whatever the outcome."""
    label = PROVIDER_LABELS[provider]
    try:
        return await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise UsageError(f"{label} API request timed out: {e.__class__.__name__}") from e
    except httpx.HTTPError as e:
        raise UsageError(f"{label} API request failed: {e}") from e
    finally:
        admin_key.wipe()
        headers.clear()


def check_response(resp: httpx.Response, provider: str) -> None:
    """Raise AuthenticationError on 401/403, HttpError on any other non-2xx."""
    if resp.status_code in (401, 403):
        raise AuthenticationError(provider, AUTH_GUIDANCE[provider])
    if not resp.is_success:
        raise HttpError(resp.status_code, resp.text)


def _parse(resp: httpx.Response, model: type[_M], provider: str) -> _M:
    try:
        payload: Any = resp.json()
        return model.model_validate(payload)
    except (ValueError, ValidationError) as e:
        raise UsageError(
            f"Failed to parse {PROVIDER_LABELS[provider]} response: {e.__class__.__name__}"
        ) from None


async def fetch_openai_cost(
    admin_key: SecretValue,
    client: httpx.AsyncClient,
    period: tuple[date, date] | None = None,
    base_url: str = DEFAULT_BASE_URLS["openai"],
) -> CostReport:
    """Fetch month-to-date cost from OpenAI, grouped by line item."""
    start, end = period or current_billing_period()
    params: list[tuple[str, str | int]] = [
        ("start_time", int(_midnight_utc(start).timestamp())),
        ("end_time", int(_midnight_utc(end + timedelta(days=1)).timestamp())),
        ("bucket_width", "1d"),
        ("limit", 31),
        ("group_by", "line_item"),
    ]
    headers = {"Authorization": f"Bearer {admin_key.reveal()}"}

    resp = await _send(
        client, "openai", f"{base_url}/v1/organization/costs", params, headers, admin_key
    )
    check_response(resp, "openai")
    body = _parse(resp, OpenAiCostsResponse, "openai")

    # OpenAI reports float USD per daily bucket; aggregate, then convert to cents
    costs: dict[str, Decimal] = {}
    currency = None
    for bucket in body.data:
        for result in bucket.results:
            desc = result.line_item or "Other"
            value = Decimal(str(result.amount.value or 0.0))
            if not value.is_finite():
                logger.warning("Non-finite OpenAI amount %r for %s", result.amount.value, desc)
                value = Decimal(0)
            _add_cost(costs, desc, value * 100, "openai")
            currency = currency or result.amount.currency

    logger.debug("OpenAI cost report: %d buckets, %d line items", len(body.data), len(costs))
    return CostReport(
        provider="openai",
        period_start=start,
        period_end=end,
        currency=(currency or "usd").lower(),
        line_items=_sorted_items(costs, "openai"),
    )


async def fetch_anthropic_cost(
    admin_key: SecretValue,
    client: httpx.AsyncClient,
    period: tuple[date, date] | None = None,
    base_url: str = DEFAULT_BASE_URLS["anthropic"],
) -> CostReport:
    """Fetch month-to-date cost from Anthropic, grouped by description."""
    start, end = period or current_billing_period()
    params: list[tuple[str, str | int]] = [
        ("starting_at", f"{start.isoformat()}T00:00:00Z"),
        ("ending_at", f"{(end + timedelta(days=1)).isoformat()}T00:00:00Z"),
        ("bucket_width", "1d"),
        ("limit", 31),
        ("group_by[]", "description"),
    ]
    headers = {
        "x-api-key": admin_key.reveal(),
        "anthropic-version": ANTHROPIC_VERSION,
    }

    resp = await _send(
        client,
        "anthropic",
        f"{base_url}/v1/organizations/cost_report",
        params,
        headers,
        admin_key,
    )
    check_response(resp, "anthropic")
    body = _parse(resp, AnthropicCostResponse, "anthropic")

    # Anthropic reports cents as decimal strings
    costs: dict[str, Decimal] = {}
    currency = None
    for bucket in body.data:
        for result in bucket.flatten():
            desc = result.description or "Claude API"
            try:
                cents = Decimal(str(result.amount))
            except InvalidOperation:
                logger.warning("Unparsable Anthropic amount %r for %s", result.amount, desc)
                cents = Decimal(0)
            if not cents.is_finite():
                logger.warning("Non-finite Anthropic amount %r for %s", result.amount, desc)
                cents = Decimal(0)
            _add_cost(costs, desc, cents, "anthropic")
            currency = currency or result.currency

    logger.debug("Anthropic cost report: %d buckets, %d line items", len(body.data), len(costs))
    return CostReport(
        provider="anthropic",
        period_start=start,
        period_end=end,
        currency=(currency or "usd").lower(),
        line_items=_sorted_items(costs, "anthropic"),
    )


Fetcher = Callable[..., Awaitable[CostReport]]

FETCHERS: dict[str, Fetcher] = {
    "openai": fetch_openai_cost,
    "anthropic": fetch_anthropic_cost,
}
