"""
Secret backends — where serialized key entries physically live.

The key store only needs four capabilities from a backend: put, get, remove,
and enumerate. Two implementations are provided:

    KeyringBackend  — the host OS secret store via the `keyring` library
                      (macOS Keychain, Secret Service, Windows Credential Locker)
    MemoryBackend   — in-process dict, used by tests and `LKR_BACKEND=memory`

The backend kind is chosen once, at construction time, via open_backend().

Failure contract:
    get/remove on a missing name  -> EntryMissing
    secret store locked            -> lkr.errors.BackendLocked
    anything else                  -> lkr.errors.BackendError
    enumerate on an empty store    -> []  (never an error)
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Protocol

from lkr.errors import BackendError, BackendLocked

logger = logging.getLogger(__name__)

# Reserved account holding the JSON list of stored names. The leading
# underscores make it an invalid key name, so it never shows up in listings.
INDEX_ACCOUNT = "__lkr_index__"


class EntryMissing(Exception):
    """Backend-level "no such entry". The key store translates it to KeyNotFound."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)


class SecretBackend(Protocol):
    def put(self, name: str, payload: str) -> None: ...

    def get(self, name: str) -> str: ...

    def remove(self, name: str) -> None: ...

    def enumerate(self) -> list[str]: ...


class MemoryBackend:
    """Thread-safe in-memory backend."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, name: str, payload: str) -> None:
        with self._lock:
            self._entries[name] = payload

    def get(self, name: str) -> str:
        with self._lock:
            try:
                return self._entries[name]
            except KeyError:
                raise EntryMissing(name) from None

    def remove(self, name: str) -> None:
        with self._lock:
            if self._entries.pop(name, None) is None:
                raise EntryMissing(name)

    def enumerate(self) -> list[str]:
        with self._lock:
            return list(self._entries)


class KeyringBackend:
    """Backend over the `keyring` library, scoped to one service name.

    keyring cannot enumerate accounts, so the names written through this
    backend are tracked in an index entry stored alongside them.
    """

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name
        self._index_lock = threading.Lock()

    def _translate(self, exc: Exception) -> Exception:
        from keyring.errors import KeyringLocked

        if isinstance(exc, KeyringLocked):
            return BackendLocked()
        return BackendError(str(exc) or exc.__class__.__name__)

    def _read(self, account: str) -> str | None:
        import keyring
        from keyring.errors import KeyringError

        try:
            return keyring.get_password(self.service_name, account)
        except KeyringError as e:
            raise self._translate(e) from e

    def _write(self, account: str, payload: str) -> None:
        import keyring
        from keyring.errors import KeyringError

        try:
            keyring.set_password(self.service_name, account, payload)
        except KeyringError as e:
            raise self._translate(e) from e

    def _load_index(self) -> list[str]:
        raw = self._read(INDEX_ACCOUNT)
        if raw is None:
            return []
        try:
            names = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Keychain index is corrupt; treating as empty")
            return []
        if not isinstance(names, list):
            return []
        return [n for n in names if isinstance(n, str)]

    def _save_index(self, names: list[str]) -> None:
        self._write(INDEX_ACCOUNT, json.dumps(sorted(set(names))))

    def put(self, name: str, payload: str) -> None:
        self._write(name, payload)
        with self._index_lock:
            names = self._load_index()
            if name not in names:
                names.append(name)
                self._save_index(names)

    def get(self, name: str) -> str:
        payload = self._read(name)
        if payload is None:
            raise EntryMissing(name)
        return payload

    def remove(self, name: str) -> None:
        import keyring
        from keyring.errors import KeyringError, PasswordDeleteError

        try:
            keyring.delete_password(self.service_name, name)
        except PasswordDeleteError as e:
            raise EntryMissing(name) from e
        except KeyringError as e:
            raise self._translate(e) from e

        with self._index_lock:
            names = self._load_index()
            if name in names:
                names.remove(name)
                self._save_index(names)

    def enumerate(self) -> list[str]:
        with self._index_lock:
            return self._load_index()


def open_backend(kind: str, service_name: str) -> SecretBackend:
    """Construct the backend named by `kind` ("keychain" or "memory")."""
    if kind == "keychain":
        return KeyringBackend(service_name)
    if kind == "memory":
        return MemoryBackend()
    raise ValueError(f"Unknown backend kind: {kind!r}")
