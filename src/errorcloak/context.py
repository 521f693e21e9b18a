"""Context stores and the enrichment step run for every sanitized error.

Enrichment is advisory: a failing callback or a failing store write is
logged at debug level and otherwise ignored, one entry at a time.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

logger = logging.getLogger(__name__)

TAGS_KEY = "exception_tags"


class ContextStore(Protocol):
    def add(self, key: str, value: Any) -> None: ...


class InMemoryContextStore:
    """Thread-safe dictionary store; later writes to a key replace earlier ones."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, Any] = {}

    def add(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def all(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def safe_add(store: ContextStore | None, key: str, value: Any) -> bool:
    """Write ``value`` to ``store``; return False instead of raising on failure."""
    if store is None:
        return False
    try:
        store.add(key, value)
    except Exception as exc:
        logger.debug("context store rejected %s: %s", key, exc)
        return False
    return True


def run_callbacks(
    store: ContextStore | None, callbacks: Mapping[str, Callable[[], Any]]
) -> None:
    for name, callback in callbacks.items():
        try:
            value = callback()
        except Exception as exc:
            logger.debug("context callback %s failed: %s", name, exc)
            continue
        if value is not None:
            safe_add(store, name, value)


def enrich(
    store: ContextStore | None,
    callbacks: Mapping[str, Callable[[], Any]],
    tags: Iterable[str] | None = None,
) -> None:
    run_callbacks(store, callbacks)
    if tags:
        safe_add(store, TAGS_KEY, list(tags))


__all__ = [
    "TAGS_KEY",
    "ContextStore",
    "InMemoryContextStore",
    "enrich",
    "run_callbacks",
    "safe_add",
]
