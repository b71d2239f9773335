"""Tests for the provider billing API clients."""

from __future__ import annotations

from datetime import date
from urllib.parse import parse_qs

import httpx
import pytest

import lkr.usage.providers as providers
from lkr.errors import AuthenticationError, HttpError, UsageError
from lkr.keys import SecretValue
from lkr.usage.providers import (
    current_billing_period,
    fetch_anthropic_cost,
    fetch_openai_cost,
)
from lkr.usage.tests.payloads import (
    ANTHROPIC_COSTS,
    OPENAI_COSTS,
    PERIOD,
    json_handler,
    make_client,
    raw_handler,
)


class TestBillingPeriod:
    def test_current(self):
        start, end = current_billing_period()
        assert start.day == 1
        assert end >= start

    def test_explicit_today(self):
        assert current_billing_period(date(2026, 3, 17)) == (date(2026, 3, 1), date(2026, 3, 17))

    def test_first_of_month(self):
        assert current_billing_period(date(2026, 3, 1)) == (date(2026, 3, 1), date(2026, 3, 1))


class TestOpenAi:
    @pytest.mark.asyncio
    async def test_normalizes_report(self):
        async with make_client(json_handler(OPENAI_COSTS)) as client:
            report = await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)

        assert report.provider == "openai"
        assert report.period_start == date(2026, 2, 1)
        assert report.period_end == date(2026, 2, 27)
        assert report.currency == "usd"
        assert [(i.description, i.cost_cents) for i in report.line_items] == [
            ("gpt-4o", 326),
            ("Other", 50),
            ("embeddings", 10),
        ]
        assert report.total_cost_cents == 386

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen: list[httpx.Request] = []
        async with make_client(json_handler(OPENAI_COSTS, seen=seen)) as client:
            await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD, base_url="https://x.test")

        request = seen[0]
        assert request.url.path == "/v1/organization/costs"
        assert request.url.host == "x.test"
        assert request.headers["authorization"] == "Bearer sk-admin"
        query = parse_qs(request.url.query.decode())
        assert query["start_time"] == ["1769904000"]  # 2026-02-01T00:00:00Z
        assert query["end_time"] == ["1772236800"]  # 2026-02-28T00:00:00Z
        assert query["group_by"] == ["line_item"]
        assert query["bucket_width"] == ["1d"]

    @pytest.mark.asyncio
    async def test_empty_response(self):
        async with make_client(json_handler({"data": []})) as client:
            report = await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)
        assert report.line_items == []
        assert report.total_cost_cents == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failure(self, status: int):
        async with make_client(json_handler({"error": "nope"}, status=status)) as client:
            with pytest.raises(AuthenticationError, match="admin-keys") as exc:
                await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)
        assert exc.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_http_error(self):
        async with make_client(json_handler({"error": "boom"}, status=500)) as client:
            with pytest.raises(HttpError) as exc:
                await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)
        assert exc.value.status == 500
        assert "boom" in exc.value.body

    @pytest.mark.asyncio
    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    async def test_non_finite_amount_counts_as_zero(self, literal: str):
        body = (
            '{"data": [{"results": ['
            f'{{"line_item": "gpt-4o", "amount": {{"value": {literal}, "currency": "usd"}}}},'
            '{"line_item": "gpt-4o", "amount": {"value": 1.5, "currency": "usd"}}'
            "]}]}"
        )
        async with make_client(raw_handler(body)) as client:
            report = await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)
        assert [(i.description, i.cost_cents) for i in report.line_items] == [("gpt-4o", 150)]

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with make_client(handler) as client:
            with pytest.raises(UsageError, match="Failed to parse OpenAI"):
                await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("stalled", request=request)

        admin_key = SecretValue("sk-admin")
        async with make_client(handler) as client:
            with pytest.raises(UsageError, match="timed out"):
                await fetch_openai_cost(admin_key, client, PERIOD)
        assert admin_key.wiped

    @pytest.mark.asyncio
    async def test_connect_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(UsageError, match="request failed"):
                await fetch_openai_cost(SecretValue("sk-admin"), client, PERIOD)

    @pytest.mark.asyncio
    async def test_key_wiped_before_parsing(self, monkeypatch):
        admin_key = SecretValue("sk-admin")
        real_parse = providers._parse
        observed: list[bool] = []

        def spy(resp, model, provider):
            observed.append(admin_key.wiped)
            return real_parse(resp, model, provider)

        monkeypatch.setattr(providers, "_parse", spy)
        async with make_client(json_handler(OPENAI_COSTS)) as client:
            await fetch_openai_cost(admin_key, client, PERIOD)
        assert observed == [True]

    @pytest.mark.asyncio
    async def test_key_wiped_on_auth_failure(self):
        admin_key = SecretValue("sk-admin")
        async with make_client(json_handler({}, status=401)) as client:
            with pytest.raises(AuthenticationError):
                await fetch_openai_cost(admin_key, client, PERIOD)
        assert admin_key.wiped


class TestAnthropic:
    @pytest.mark.asyncio
    async def test_normalizes_report(self):
        async with make_client(json_handler(ANTHROPIC_COSTS)) as client:
            report = await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)

        assert report.provider == "anthropic"
        assert report.currency == "usd"
        assert [(i.description, i.cost_cents) for i in report.line_items] == [
            ("Claude Sonnet", 1500),
            ("Claude API", 42),
        ]
        assert report.total_cost_cents == 1542

    @pytest.mark.asyncio
    async def test_flat_results(self):
        payload = {"data": [{"description": "Claude API", "amount": "1350", "currency": "usd"}]}
        async with make_client(json_handler(payload)) as client:
            report = await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)
        assert report.total_cost_cents == 1350

    @pytest.mark.asyncio
    async def test_unparsable_amount_counts_as_zero(self):
        payload = {"data": [{"results": [{"description": "x", "amount": "n/a"}]}]}
        async with make_client(json_handler(payload)) as client:
            report = await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)
        assert report.line_items[0].cost_cents == 0

    @pytest.mark.asyncio
    async def test_non_finite_amount_counts_as_zero(self):
        payload = {"data": [{"results": [{"description": "x", "amount": "NaN"}]}]}
        async with make_client(json_handler(payload)) as client:
            report = await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)
        assert report.line_items[0].cost_cents == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["1e40", "1e9999999"])
    async def test_amount_out_of_range(self, amount: str):
        payload = {"data": [{"results": [{"description": "x", "amount": amount}]}]}
        async with make_client(json_handler(payload)) as client:
            with pytest.raises(UsageError, match="out of range"):
                await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen: list[httpx.Request] = []
        async with make_client(json_handler(ANTHROPIC_COSTS, seen=seen)) as client:
            await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)

        request = seen[0]
        assert request.url.path == "/v1/organizations/cost_report"
        assert request.headers["x-api-key"] == "sk-ant-admin"
        assert request.headers["anthropic-version"] == "2023-06-01"
        query = parse_qs(request.url.query.decode())
        assert query["starting_at"] == ["2026-02-01T00:00:00Z"]
        assert query["ending_at"] == ["2026-02-28T00:00:00Z"]
        assert query["group_by[]"] == ["description"]

    @pytest.mark.asyncio
    async def test_auth_failure_guidance(self):
        async with make_client(json_handler({}, status=403)) as client:
            with pytest.raises(AuthenticationError, match="Organization account"):
                await fetch_anthropic_cost(SecretValue("sk-ant-admin"), client, PERIOD)
