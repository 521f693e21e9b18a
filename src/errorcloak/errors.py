"""Error classification.

The policy never inspects exception classes directly. It asks a classifier
for an :class:`ErrorCategory`, whose ``name`` keys every per-type setting
(forced / allowed types, generic messages, tags) and whose ``build`` callable
re-creates an error of the same kind for :meth:`CloakManager.rethrow`.

Public API:
- classify_error(exc) -> ErrorCategory
- Classifier(aliases) -> callable classifier grouping type names
- type_name(cls) -> str
- error_code(exc) / error_cause(exc) / error_location(exc)
"""

from __future__ import annotations

import traceback
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Optional

ErrorBuilder = Callable[[str, int, Optional[BaseException]], BaseException]


@dataclass(frozen=True)
class ErrorCategory:
    name: str
    build: ErrorBuilder = field(compare=False)
    type_name: str = ""


def type_name(cls: type) -> str:
    """Qualified name used to refer to an exception type in configuration.

    Builtins use their bare name (``ValueError``); everything else is
    ``module.QualName`` (``sqlite3.OperationalError``).
    """
    module = getattr(cls, "__module__", "builtins")
    qualname = getattr(cls, "__qualname__", cls.__name__)
    if module in ("builtins", "__builtin__"):
        return qualname
    return f"{module}.{qualname}"


def rebuild_error(cls: type[BaseException]) -> ErrorBuilder:
    """Default builder: ``cls(message)`` with ``code`` and ``__cause__`` restored."""

    def build(message: str, code: int, cause: BaseException | None) -> BaseException:
        error = cls(message)
        if code:
            error.code = code  # type: ignore[attr-defined]
        if cause is not None:
            error.__cause__ = cause
        return error

    return build


def classify_error(exc: BaseException) -> ErrorCategory:
    cls = type(exc)
    name = type_name(cls)
    return ErrorCategory(name=name, build=rebuild_error(cls), type_name=name)


class Classifier:
    """Classifier that maps type names onto shared category names.

    ``Classifier({"sqlite3.OperationalError": "database"})`` reports every
    ``sqlite3.OperationalError`` under the ``database`` category; unmapped
    types keep their own type name. Builders always target the exact type.
    """

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self._aliases = dict(aliases or {})

    def __call__(self, exc: BaseException) -> ErrorCategory:
        base = classify_error(exc)
        alias = self._aliases.get(base.name)
        if alias is None:
            return base
        return ErrorCategory(name=alias, build=base.build, type_name=base.type_name)


def error_code(exc: BaseException) -> int:
    code = getattr(exc, "code", 0)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return 0


def error_cause(exc: BaseException) -> BaseException | None:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def error_location(exc: BaseException) -> tuple[str, int]:
    """File and line where ``exc`` was raised, ``("unknown", 0)`` if never raised."""
    tb = exc.__traceback__
    if tb is None:
        return "unknown", 0
    summary = traceback.extract_tb(tb)
    if not summary:
        return "unknown", 0
    last = summary[-1]
    return last.filename, int(last.lineno or 0)


__all__ = [
    "Classifier",
    "ErrorBuilder",
    "ErrorCategory",
    "classify_error",
    "error_cause",
    "error_code",
    "error_location",
    "rebuild_error",
    "type_name",
]
