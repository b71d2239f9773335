"""
Known environment variable names for .env-style templates.

Matching is exact (case-insensitive), never by prefix: `AWS_REGION` or
`OPENAI_ORG_ID` must not receive an API key just because they start with a
provider's prefix. A provider may have more than one conventional variable
name; the first one listed is its canonical name.
"""

from __future__ import annotations

ENV_VAR_PROVIDERS: dict[str, str] = {
    "OPENAI_API_KEY": "openai",
    "ANTHROPIC_API_KEY": "anthropic",
    "GOOGLE_API_KEY": "google",
    "GEMINI_API_KEY": "google",
    "MISTRAL_API_KEY": "mistral",
    "COHERE_API_KEY": "cohere",
    "GROQ_API_KEY": "groq",
    "PERPLEXITY_API_KEY": "perplexity",
    "FIREWORKS_API_KEY": "fireworks",
    "TOGETHER_API_KEY": "together",
    "REPLICATE_API_TOKEN": "replicate",
    "HUGGINGFACE_API_KEY": "huggingface",
    "HF_TOKEN": "huggingface",
    "DEEPSEEK_API_KEY": "deepseek",
    "XAI_API_KEY": "xai",
    "AZURE_OPENAI_API_KEY": "azure-openai",
    "AWS_API_KEY": "aws",
    "VOYAGE_API_KEY": "voyage",
    "ANYSCALE_API_KEY": "anyscale",
    "OPENROUTER_API_KEY": "openrouter",
}


def provider_for_env_var(var_name: str) -> str | None:
    """Return the provider id for an exact env var name, or None."""
    return ENV_VAR_PROVIDERS.get(var_name.strip().upper())


def key_to_env_var(key_name: str) -> str | None:
    """Map a key name (e.g. `openai:prod`) to its canonical env var (`OPENAI_API_KEY`)."""
    provider = key_name.split(":", 1)[0]
    for var, prov in ENV_VAR_PROVIDERS.items():
        if prov == provider:
            return var
    return None
