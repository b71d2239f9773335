"""
Error hierarchy for LKR.

Every failure the core can produce is a distinct LkrError subclass so callers
can tell "key missing" from "keychain locked" from "provider rejected the
admin key" without parsing messages. Nothing in the core retries; errors are
raised to the caller as-is.
"""

from __future__ import annotations


class LkrError(Exception):
    """Base class for all LKR errors."""


class InvalidName(LkrError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid key name: {name}. {reason}")


class EmptyValue(LkrError):
    def __init__(self) -> None:
        super().__init__("Empty value is not allowed")


class InvalidValue(LkrError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid key value: {reason}")


class KeyNotFound(LkrError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Key not found: {name}")


class KeyAlreadyExists(LkrError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Key already exists: {name}. Use --force to overwrite.")


class BackendLocked(LkrError):
    def __init__(self) -> None:
        super().__init__("Keychain is locked. Please unlock and try again.")


class BackendError(LkrError):
    """Opaque failure from the secret backend."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Keychain error: {message}")


class TemplateError(LkrError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Template error: {message}")


class AdminKeyRequired(LkrError):
    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"Admin key required for {provider} usage tracking. "
            f"Run `lkr set {provider}:admin --kind admin` to register."
        )


class UsageError(LkrError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Usage API error: {message}")


class AuthenticationError(UsageError):
    """The provider rejected the admin key (HTTP 401/403)."""

    def __init__(self, provider: str, guidance: str) -> None:
        self.provider = provider
        self.guidance = guidance
        super().__init__(guidance)


class BatchError(UsageError):
    """Every provider in a batch fetch failed."""

    def __init__(self, errors: dict[str, LkrError]) -> None:
        self.errors = errors
        detail = "; ".join(f"{p}: {e}" for p, e in errors.items())
        super().__init__(f"All providers failed ({detail})")


class HttpError(LkrError):
    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")
