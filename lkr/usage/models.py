"""
Usage data models.

CostReport / CostLineItem are the normalized, provider-independent shapes
returned to callers. The *Response models describe the subset of each
provider's billing API response that LKR reads; unknown fields are ignored.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, computed_field


class CostLineItem(BaseModel):
    """A single line item (e.g. "GPT-4o" or "Claude API")."""

    description: str
    cost_cents: int


class CostReport(BaseModel):
    """Normalized cost for one provider over the current billing period."""

    provider: str
    period_start: date
    period_end: date
    currency: str = "usd"
    line_items: list[CostLineItem] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_cost_cents(self) -> int:
        return sum(item.cost_cents for item in self.line_items)


# ─── OpenAI /v1/organization/costs ───────────────────────────────────


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class OpenAiAmount(_Lenient):
    value: float | None = None
    currency: str = "usd"


class OpenAiCostResult(_Lenient):
    amount: OpenAiAmount = Field(default_factory=OpenAiAmount)
    line_item: str | None = None


class OpenAiCostBucket(_Lenient):
    results: list[OpenAiCostResult] = Field(default_factory=list)


class OpenAiCostsResponse(_Lenient):
    data: list[OpenAiCostBucket] = Field(default_factory=list)


# ─── Anthropic /v1/organizations/cost_report ─────────────────────────


class AnthropicCostResult(_Lenient):
    description: str | None = None
    amount: str | float | None = None  # cents as a decimal string, e.g. "1350" = $13.50
    currency: str = "usd"


class AnthropicCostBucket(AnthropicCostResult):
    """A time bucket holding `results`; older responses put the result fields here directly."""

    results: list[AnthropicCostResult] = Field(default_factory=list)

    def flatten(self) -> list[AnthropicCostResult]:
        if self.results:
            return self.results
        if self.amount is not None:
            return [self]
        return []


class AnthropicCostResponse(_Lenient):
    data: list[AnthropicCostBucket] = Field(default_factory=list)
