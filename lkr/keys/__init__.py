"""
Key management — validated names, kind separation, and masked listings.

Public API:
    KeyStore.default()            → store over the configured backend
    store.set(name, value, kind)  → store (refuses overwrite without force=True)
    store.get(name)               → (SecretValue, KeyKind)
    store.delete(name)            → remove
    store.list(include_admin)     → sorted KeyEntry list (masked values only)
"""

from __future__ import annotations

from lkr.keys.backend import EntryMissing, KeyringBackend, MemoryBackend, SecretBackend, open_backend
from lkr.keys.names import KeyName, mask_value, validate_name
from lkr.keys.secret import SecretValue
from lkr.keys.store import KeyEntry, KeyKind, KeyStore

__all__ = [
    "EntryMissing",
    "KeyEntry",
    "KeyKind",
    "KeyName",
    "KeyStore",
    "KeyringBackend",
    "MemoryBackend",
    "SecretBackend",
    "SecretValue",
    "mask_value",
    "open_backend",
    "validate_name",
]
