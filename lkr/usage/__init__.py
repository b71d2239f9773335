"""
Usage tracking — month-to-date cost reports from provider billing APIs.

Requires an admin key per provider, stored as `<provider>:admin` with
kind=admin. Reports are cached in-process for the configured TTL.
"""

from __future__ import annotations

from lkr.usage.cache import UsageCache
from lkr.usage.models import CostLineItem, CostReport
from lkr.usage.providers import SUPPORTED_PROVIDERS, current_billing_period
from lkr.usage.service import (
    UsageBatch,
    available_providers,
    fetch_all,
    fetch_cost,
    format_cost,
    get_admin_key,
)

__all__ = [
    "SUPPORTED_PROVIDERS",
    "CostLineItem",
    "CostReport",
    "UsageBatch",
    "UsageCache",
    "available_providers",
    "current_billing_period",
    "fetch_all",
    "fetch_cost",
    "format_cost",
    "get_admin_key",
]
