"""Registry resolving response formatters by name."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from .config import DEFAULT_FORMAT, ConfigError
from .exceptions import FormatterNotFoundError
from .formatters import (
    HalFormatter,
    HydraFormatter,
    JsonApiFormatter,
    ProblemJsonFormatter,
    ResponseFormatter,
    SimpleFormatter,
)
from .plugins import PluginError, load_formatter_plugins, resolve_object

BUILTIN_FORMATTERS: dict[str, type] = {
    "simple": SimpleFormatter,
    "json-api": JsonApiFormatter,
    "problem-json": ProblemJsonFormatter,
    "hal": HalFormatter,
    "hydra": HydraFormatter,
}


def _instantiate(name: str, target: Any) -> ResponseFormatter:
    if isinstance(target, str):
        try:
            target = resolve_object(target)
        except PluginError as exc:
            raise ConfigError(f"custom formatter '{name}': {exc}") from exc
    if inspect.isclass(target):
        target = target()
    if not callable(getattr(target, "format", None)):
        raise ConfigError(f"custom formatter '{name}' has no format() method")
    return target  # type: ignore[no-any-return]


def accepts_request(formatter: Any) -> bool:
    """Whether ``formatter.format`` takes a ``request`` keyword.

    Formatters written against the four-argument contract
    ``format(error, status, include_trace, headers)`` are called without it.
    """
    try:
        params = inspect.signature(formatter.format).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(
        p.name == "request" or p.kind is inspect.Parameter.VAR_KEYWORD for p in params
    )


class FormatterRegistry:
    """Built-in formatters, then plugins, then configured custom formatters.

    Later sources replace earlier ones with the same name, so a configured
    formatter can override ``simple`` and friends.
    """

    def __init__(
        self,
        custom: Mapping[str, Any] | None = None,
        *,
        default_format: str = DEFAULT_FORMAT,
        load_plugins: bool = True,
    ) -> None:
        self._formatters: dict[str, ResponseFormatter] = {}
        self._takes_request: dict[str, bool] = {}
        for name, cls in BUILTIN_FORMATTERS.items():
            self.register(name, cls())
        if load_plugins:
            for plugin in load_formatter_plugins():
                try:
                    self.register(plugin.name, _instantiate(plugin.name, plugin.target))
                except ConfigError:
                    continue
        for name, target in (custom or {}).items():
            self.register(str(name), _instantiate(str(name), target))
        self._default_format = default_format

    @property
    def default_format(self) -> str:
        return self._default_format

    def get(self, name: str) -> ResponseFormatter:
        try:
            return self._formatters[name]
        except KeyError:
            raise FormatterNotFoundError(name) from None

    def get_default(self) -> ResponseFormatter:
        return self.get(self._default_format)

    def register(self, name: str, formatter: ResponseFormatter) -> None:
        self._formatters[name] = formatter
        self._takes_request[name] = accepts_request(formatter)

    def accepts_request(self, name: str) -> bool:
        if name not in self._takes_request:
            raise FormatterNotFoundError(name)
        return self._takes_request[name]

    def has(self, name: str) -> bool:
        return name in self._formatters

    def names(self) -> list[str]:
        return list(self._formatters)


__all__ = ["BUILTIN_FORMATTERS", "FormatterRegistry", "accepts_request"]
