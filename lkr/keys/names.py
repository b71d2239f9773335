"""
Key name validation and value masking.

Key names are `{provider}:{label}`, both parts matching [a-z0-9][a-z0-9-]*.
Names are case-sensitive on purpose: `OpenAI:prod` is rejected rather than
silently folded to `openai:prod`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from lkr.errors import InvalidName

_PART_RE = re.compile(r"[a-z0-9][a-z0-9-]*")


def _valid_part(part: str) -> bool:
    return _PART_RE.fullmatch(part) is not None


def validate_name(name: str) -> tuple[str, str]:
    """Validate a key name and return its (provider, label) parts."""
    provider, sep, label = name.partition(":")
    if not sep:
        raise InvalidName(name, "Must be in 'provider:label' format (e.g. openai:prod)")
    if not _valid_part(provider):
        raise InvalidName(name, f"Provider '{provider}' must match [a-z0-9][a-z0-9-]*")
    if not _valid_part(label):
        raise InvalidName(name, f"Label '{label}' must match [a-z0-9][a-z0-9-]*")
    return provider, label


@dataclass(frozen=True)
class KeyName:
    """A validated `provider:label` identifier."""

    provider: str
    label: str

    @classmethod
    def parse(cls, name: str) -> KeyName:
        provider, label = validate_name(name)
        return cls(provider=provider, label=label)

    def __str__(self) -> str:
        return f"{self.provider}:{self.label}"


def mask_value(value: str) -> str:
    """Mask an API key for display: "sk-proj-abcdefghijklmnop" -> "sk-p...mnop".

    Values of 8 characters or fewer become the same number of asterisks, so
    the mask reveals the length of short values.
    """
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"
