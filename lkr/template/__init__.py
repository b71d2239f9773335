"""
Template generation — render config files with stored runtime keys.

Usage:
    from lkr.keys import KeyStore
    from lkr.template import generate, derive_output_path

    store = KeyStore.default()
    result = generate(store, ".env.example", derive_output_path(".env.example"))
    for r in result.unresolved:
        print(f"kept as-is: {r.placeholder}")
"""

from __future__ import annotations

from lkr.template.env_vars import ENV_VAR_PROVIDERS, key_to_env_var, provider_for_env_var
from lkr.template.output import check_gitignore, derive_output_path, write_secure
from lkr.template.render import (
    GenResult,
    Resolution,
    generate,
    is_placeholder_template,
    render,
    render_env,
    render_placeholders,
)

__all__ = [
    "ENV_VAR_PROVIDERS",
    "GenResult",
    "Resolution",
    "check_gitignore",
    "derive_output_path",
    "generate",
    "is_placeholder_template",
    "key_to_env_var",
    "provider_for_env_var",
    "render",
    "render_env",
    "render_placeholders",
    "write_secure",
]
