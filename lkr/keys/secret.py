"""
SecretValue — a raw secret held in a wipeable buffer.

Every raw key read from the backend (or typed at a prompt) is wrapped in a
SecretValue. The bytes live in a bytearray that is zeroed by wipe(), on
context-manager exit, and on garbage collection. Strings returned by
reveal() are immutable Python objects and cannot be zeroed; keep them as
short-lived locals and never store them on long-lived objects.
"""

from __future__ import annotations

from lkr.keys.names import mask_value


class SecretValue:
    """Mutable, wipeable container for a raw secret string."""

    __slots__ = ("_buf", "_wiped")

    def __init__(self, value: str | bytes | bytearray) -> None:
        if isinstance(value, str):
            self._buf = bytearray(value.encode("utf-8"))
        else:
            self._buf = bytearray(value)
        self._wiped = False

    def reveal(self) -> str:
        """Return the raw secret text. Raises ValueError once wiped."""
        if self._wiped:
            raise ValueError("SecretValue has been wiped")
        return self._buf.decode("utf-8")

    def wipe(self) -> None:
        """Overwrite the buffer with zeroes. Safe to call more than once."""
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._buf = bytearray()
        self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    def masked(self) -> str:
        return mask_value(self.reveal())

    def __len__(self) -> int:
        if self._wiped:
            return 0
        return len(self.reveal())

    def __bool__(self) -> bool:
        return not self._wiped and len(self._buf) > 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretValue):
            return not self._wiped and not other._wiped and self._buf == other._buf
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __enter__(self) -> SecretValue:
        return self

    def __exit__(self, *exc: object) -> None:
        self.wipe()

    def __del__(self) -> None:
        try:
            self.wipe()
        except Exception:
            pass

    def __repr__(self) -> str:
        return "SecretValue(<wiped>)" if self._wiped else "SecretValue(<redacted>)"

    __str__ = __repr__
