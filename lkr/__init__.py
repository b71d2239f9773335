"""LKR — LLM Key Ring. Named API keys in the OS secret store, config templates, and usage reports."""

__version__ = "0.1.0"
