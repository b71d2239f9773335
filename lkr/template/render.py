"""
Template rendering — inject stored runtime keys into config files.

Two formats, detected from content:

    Placeholder format   any text containing {{lkr:provider:label}} tokens,
                         typically JSON (e.g. .mcp.json.template). Each token
                         is replaced by the named key, escaped as a JSON string
                         body.
    Assignment format    .env-style KEY=value lines. Known variable names
                         (see env_vars.ENV_VAR_PROVIDERS) receive the first
                         runtime key stored for their provider.

Admin keys are never injected. In placeholder format, naming an admin key is
a hard TemplateError rather than a silent skip.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from lkr.errors import InvalidName, KeyNotFound, TemplateError
from lkr.keys import KeyEntry, KeyKind, KeyStore
from lkr.template.env_vars import provider_for_env_var
from lkr.template.output import write_secure

logger = logging.getLogger(__name__)

PLACEHOLDER_OPEN = "{{lkr:"
PLACEHOLDER_CLOSE = "}}"


@dataclass
class Resolution:
    """One placeholder or variable and the key it was resolved to, if any."""

    placeholder: str  # "OPENAI_API_KEY" or "{{lkr:openai:prod}}"
    key_name: str | None = None
    alternatives: list[str] = field(default_factory=list)  # all keys for the provider

    @property
    def resolved(self) -> bool:
        return self.key_name is not None

    @property
    def other_candidates(self) -> list[str]:
        """Alternatives excluding the chosen key."""
        return [a for a in self.alternatives if a != self.key_name]


@dataclass
class GenResult:
    """Rendered content plus what happened to each placeholder."""

    content: str
    resolutions: list[Resolution] = field(default_factory=list)

    @property
    def resolved(self) -> list[Resolution]:
        return [r for r in self.resolutions if r.resolved]

    @property
    def unresolved(self) -> list[Resolution]:
        return [r for r in self.resolutions if not r.resolved]


def is_placeholder_template(content: str) -> bool:
    return PLACEHOLDER_OPEN in content


def escape_value(value: str) -> str:
    """Escape a raw value for embedding inside a JSON string literal."""
    return json.dumps(value, ensure_ascii=False)[1:-1]


# ─── Assignment format ────────────────────────────────────────────────


def build_provider_map(entries: list[KeyEntry]) -> dict[str, tuple[str, list[str]]]:
    """Map provider -> (first key name, all key names), from a name-sorted listing."""
    provider_map: dict[str, tuple[str, list[str]]] = {}
    for entry in sorted(entries, key=lambda e: e.name):
        if entry.provider in provider_map:
            provider_map[entry.provider][1].append(entry.name)
        else:
            provider_map[entry.provider] = (entry.name, [entry.name])
    return provider_map


def render_env(store: KeyStore, content: str) -> GenResult:
    """Render a .env.example-style template.

    Comments and blank lines pass through verbatim. KEY=value lines whose KEY
    is a known provider variable get the provider's first runtime key; all
    other lines are kept unchanged.
    """
    provider_map = build_provider_map(store.list(include_admin=False))

    lines: list[str] = []
    resolutions: list[Resolution] = []

    # Only \n and \r\n end a line; other Unicode line breaks are content
    raw_lines = content.split("\n")
    if raw_lines[-1] == "":
        raw_lines.pop()

    for line in raw_lines:
        line = line.removesuffix("\r")
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            lines.append(line)
            continue

        var_name = stripped.split("=", 1)[0].strip()
        provider = provider_for_env_var(var_name)
        match = provider_map.get(provider) if provider else None

        if match is not None:
            key_name, alternatives = match
            try:
                value, _ = store.get(key_name)
            except KeyNotFound:
                # Removed between listing and read
                value = None
            if value is not None:
                with value:
                    lines.append(f"{var_name}={value.reveal()}")
                resolutions.append(
                    Resolution(var_name, key_name=key_name, alternatives=list(alternatives))
                )
                continue

        lines.append(line)
        resolutions.append(Resolution(var_name))

    output = "".join(f"{line}\n" for line in lines)
    return GenResult(content=output, resolutions=resolutions)


# ─── Placeholder format ───────────────────────────────────────────────


def render_placeholders(store: KeyStore, content: str) -> GenResult:
    """Render a template containing {{lkr:provider:label}} placeholders."""
    output = content
    resolutions: list[Resolution] = []

    search_from = 0
    while True:
        start = output.find(PLACEHOLDER_OPEN, search_from)
        if start == -1:
            break
        close = output.find(PLACEHOLDER_CLOSE, start + len(PLACEHOLDER_OPEN))
        if close == -1:
            raise TemplateError(f"Unclosed placeholder starting at position {start}")
        end = close + len(PLACEHOLDER_CLOSE)

        placeholder = output[start:end]
        key_name = output[start + len(PLACEHOLDER_OPEN) : close]

        try:
            value, kind = store.get(key_name)
        except KeyNotFound:
            resolutions.append(Resolution(placeholder))
            search_from = end
            continue
        except InvalidName as e:
            raise TemplateError(f"Invalid key name in placeholder {placeholder}: {e.reason}") from None

        with value:
            if kind == KeyKind.ADMIN:
                raise TemplateError(
                    f"Admin key '{key_name}' cannot be used in templates. "
                    "Only runtime keys are allowed."
                )
            replacement = escape_value(value.reveal())

        output = output[:start] + replacement + output[end:]
        # Resume after the inserted value; its length differs from the placeholder's
        search_from = start + len(replacement)
        del replacement
        resolutions.append(Resolution(placeholder, key_name=key_name))

    return GenResult(content=output, resolutions=resolutions)


def render(store: KeyStore, content: str) -> GenResult:
    """Render a template, auto-detecting its format."""
    if is_placeholder_template(content):
        return render_placeholders(store, content)
    return render_env(store, content)


def generate(store: KeyStore, template_path: Path | str, output_path: Path | str) -> GenResult:
    """Render template_path and write the result to output_path (mode 600)."""
    template_path = Path(template_path)
    try:
        content = template_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"Cannot read template '{template_path}': {e}") from e

    result = render(store, content)
    write_secure(output_path, result.content)
    logger.info(
        "Generated %s from %s (%d resolved, %d unresolved)",
        output_path,
        template_path,
        len(result.resolved),
        len(result.unresolved),
    )
    return result
