"""Error identifiers used to correlate sanitized responses with log entries.

Two formats are supported:

- ``random``: an RFC 4122 version 4 UUID (``8-4-4-4-12`` lowercase hex).
- ``sortable``: a ULID, 26 Crockford base-32 characters whose lexicographic
  order follows issuance time. Identifiers issued within the same
  millisecond increment the random component so ordering holds inside a
  process.

Identifiers are never empty; uniqueness is statistical, no dedup table is kept.
"""

from __future__ import annotations

import os
import threading
import time
import uuid
from enum import Enum

CROCKFORD_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

_RANDOM_BITS = 80
_RANDOM_MAX = (1 << _RANDOM_BITS) - 1
_TIMESTAMP_MAX = (1 << 48) - 1


class IdentifierMode(str, Enum):
    NONE = "none"
    RANDOM = "random"
    SORTABLE = "sortable"

    @classmethod
    def parse(cls, value: str | IdentifierMode | None) -> IdentifierMode:
        """Accept enum members, canonical names and the ``uuid``/``ulid`` aliases."""
        if isinstance(value, IdentifierMode):
            return value
        if value is None:
            return cls.NONE
        key = str(value).strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        raise ValueError(f"unknown identifier mode: {value!r}")


_ALIASES: dict[str, IdentifierMode] = {
    "": IdentifierMode.NONE,
    "none": IdentifierMode.NONE,
    "null": IdentifierMode.NONE,
    "off": IdentifierMode.NONE,
    "random": IdentifierMode.RANDOM,
    "uuid": IdentifierMode.RANDOM,
    "sortable": IdentifierMode.SORTABLE,
    "ulid": IdentifierMode.SORTABLE,
}


def _encode(value: int, length: int) -> str:
    chars = []
    for _ in range(length):
        value, rem = divmod(value, 32)
        chars.append(CROCKFORD_ALPHABET[rem])
    return "".join(reversed(chars))


class _UlidState:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random = 0

    def next(self) -> str:
        with self._lock:
            now_ms = min(time.time_ns() // 1_000_000, _TIMESTAMP_MAX)
            if now_ms <= self._last_ms:
                # Same (or earlier, if the clock stepped back) millisecond.
                now_ms = self._last_ms
                rand = self._last_random + 1
                if rand > _RANDOM_MAX:
                    now_ms += 1
                    rand = int.from_bytes(os.urandom(10), "big")
            else:
                rand = int.from_bytes(os.urandom(10), "big")
            self._last_ms = now_ms
            self._last_random = rand
        return _encode(now_ms, 10) + _encode(rand, 16)


_ULID = _UlidState()


def new_uuid() -> str:
    return str(uuid.uuid4())


def new_ulid() -> str:
    return _ULID.next()


def issue(mode: str | IdentifierMode | None) -> str | None:
    """Issue an identifier for ``mode`` (None when identifiers are disabled)."""
    resolved = IdentifierMode.parse(mode)
    if resolved is IdentifierMode.RANDOM:
        return new_uuid()
    if resolved is IdentifierMode.SORTABLE:
        return new_ulid()
    return None


__all__ = ["CROCKFORD_ALPHABET", "IdentifierMode", "issue", "new_ulid", "new_uuid"]
