"""
KeyStore — naming, kind, and overwrite policy on top of a secret backend.

Each key is stored as JSON in the backend's password field:
    {"value": "<actual-api-key>", "kind": "runtime"}

The store is stateless between calls; all state lives in the backend.
Raw values leave the store only as SecretValue instances.
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum

from pydantic import BaseModel

from lkr.config import get_config
from lkr.errors import (
    BackendError,
    EmptyValue,
    InvalidName,
    InvalidValue,
    KeyAlreadyExists,
    KeyNotFound,
    LkrError,
)
from lkr.keys.backend import EntryMissing, SecretBackend, open_backend
from lkr.keys.names import mask_value, validate_name
from lkr.keys.secret import SecretValue

logger = logging.getLogger(__name__)


class KeyKind(StrEnum):
    """Runtime keys are injectable; admin keys unlock billing APIs and are never injected."""

    RUNTIME = "runtime"
    ADMIN = "admin"


class KeyEntry(BaseModel):
    """A stored key as shown in listings. Never includes the raw value."""

    name: str
    provider: str
    label: str
    kind: KeyKind
    masked_value: str


def _serialize(value: str, kind: KeyKind) -> str:
    return json.dumps({"value": value, "kind": kind.value})


def _deserialize(name: str, payload: str) -> tuple[SecretValue, KeyKind]:
    try:
        data = json.loads(payload)
        value = data["value"]
        kind = KeyKind(data["kind"])
        if not isinstance(value, str):
            raise TypeError("value is not a string")
        # UnicodeEncodeError (a ValueError) for lone surrogates
        secret = SecretValue(value)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise BackendError(f"Failed to deserialize '{name}': {e.__class__.__name__}") from None
    return secret, kind


class KeyStore:
    """Policy layer over a SecretBackend."""

    def __init__(self, backend: SecretBackend) -> None:
        self.backend = backend

    @classmethod
    def default(cls) -> KeyStore:
        """Build a store over the backend selected by LKR_BACKEND."""
        cfg = get_config()
        return cls(open_backend(cfg.backend, cfg.service_name))

    def set(
        self,
        name: str,
        value: str,
        kind: KeyKind = KeyKind.RUNTIME,
        *,
        force: bool = False,
    ) -> None:
        """Store a key. Refuses to overwrite an existing key unless force=True."""
        validate_name(name)
        if not value:
            raise EmptyValue()
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidValue("not valid UTF-8 text") from None
        if not force and self.exists(name):
            raise KeyAlreadyExists(name)

        with SecretValue(_serialize(value, kind)) as payload:
            self.backend.put(name, payload.reveal())
        logger.debug("Stored %s (kind=%s)", name, kind)

    def get(self, name: str) -> tuple[SecretValue, KeyKind]:
        """Return (value, kind). The caller owns the SecretValue and should wipe it."""
        validate_name(name)
        try:
            raw = self.backend.get(name)
        except EntryMissing:
            raise KeyNotFound(name) from None
        try:
            payload = SecretValue(raw)
        except UnicodeEncodeError:
            raise BackendError(f"Failed to deserialize '{name}': UnicodeEncodeError") from None
        finally:
            del raw
        with payload:
            return _deserialize(name, payload.reveal())

    def delete(self, name: str) -> None:
        validate_name(name)
        try:
            self.backend.remove(name)
        except EntryMissing:
            raise KeyNotFound(name) from None
        logger.debug("Removed %s", name)

    def exists(self, name: str) -> bool:
        try:
            value, _ = self.get(name)
        except KeyNotFound:
            return False
        value.wipe()
        return True

    def list(self, include_admin: bool = False) -> list[KeyEntry]:
        """List stored keys sorted by name, masked.

        Best-effort: entries with invalid names or unreadable payloads are
        skipped rather than failing the whole listing.
        """
        entries: list[KeyEntry] = []
        for name in self.backend.enumerate():
            try:
                provider, label = validate_name(name)
                value, kind = self.get(name)
            except (InvalidName, KeyNotFound, BackendError) as e:
                logger.debug("Skipping entry %r: %s", name, e)
                continue

            with value:
                if kind == KeyKind.ADMIN and not include_admin:
                    continue
                entries.append(
                    KeyEntry(
                        name=name,
                        provider=provider,
                        label=label,
                        kind=kind,
                        masked_value=mask_value(value.reveal()),
                    )
                )
        entries.sort(key=lambda e: e.name)
        return entries

    def suggest(self, name: str) -> list[str]:
        """Names of stored keys that look like `name`, for "did you mean" hints."""
        provider = name.split(":", 1)[0]
        prefix = name[:4]
        try:
            entries = self.list(include_admin=True)
        except LkrError:
            return []
        return [e.name for e in entries if (prefix and prefix in e.name) or e.provider == provider]
