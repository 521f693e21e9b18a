"""Plugin discovery for response formatters and import-spec resolution."""

from __future__ import annotations

import importlib
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from importlib import metadata
from typing import Any, cast

logger = logging.getLogger(__name__)

PLUGIN_GROUP = "errorcloak.formatters"
ENV_PLUGIN_SPEC = "ERRORCLOAK_FORMATTERS"


class PluginError(ImportError):
    pass


@dataclass(frozen=True)
class FormatterPlugin:
    name: str
    target: Any


def resolve_object(spec: str) -> Any:
    """Import ``module:attr`` (dotted attribute paths allowed after the colon)."""
    module_name, _, attr = spec.strip().partition(":")
    if not module_name or not attr:
        raise PluginError(f"expected 'module:attribute', got {spec!r}")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise PluginError(f"cannot import module {module_name!r}: {exc}") from exc
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise PluginError(f"{module_name!r} has no attribute {attr!r}") from exc
    return obj


def _load_entry_point_plugins() -> list[FormatterPlugin]:
    plugins: list[FormatterPlugin] = []
    try:
        eps = metadata.entry_points()
    except Exception:  # pragma: no cover - importlib metadata edge case
        return plugins
    selected = getattr(eps, "select", None)
    entries: Iterable[Any]
    if callable(selected):
        entries = cast(Iterable[Any], selected(group=PLUGIN_GROUP))
    else:  # pragma: no cover - legacy dict interface
        entries = cast(Iterable[Any], eps.get(PLUGIN_GROUP, []) if isinstance(eps, dict) else [])
    for ep in entries:
        try:
            plugins.append(FormatterPlugin(name=ep.name, target=ep.load()))
        except Exception as exc:  # plugin load failures shouldn't break the registry
            logger.warning("failed to load formatter plugin %s: %s", ep.name, exc)
    return plugins


def _load_env_plugins() -> list[FormatterPlugin]:
    spec = os.environ.get(ENV_PLUGIN_SPEC)
    if not spec:
        return []
    plugins: list[FormatterPlugin] = []
    for raw_item in spec.split(","):
        item = raw_item.strip()
        if not item:
            continue
        name, _, target = item.partition("=")
        if not name or not target:
            logger.warning("ignoring malformed %s entry %r", ENV_PLUGIN_SPEC, item)
            continue
        try:
            plugins.append(FormatterPlugin(name=name.strip(), target=resolve_object(target)))
        except PluginError as exc:
            logger.warning("failed to load formatter plugin %s: %s", name, exc)
    return plugins


def load_formatter_plugins() -> list[FormatterPlugin]:
    return _load_entry_point_plugins() + _load_env_plugins()


__all__ = [
    "ENV_PLUGIN_SPEC",
    "PLUGIN_GROUP",
    "FormatterPlugin",
    "PluginError",
    "load_formatter_plugins",
    "resolve_object",
]
