"""Exceptions raised or produced by errorcloak."""

from __future__ import annotations

from collections.abc import Iterable

from .models import RedactedFrame
from .trace import format_trace


class CloakError(Exception):
    """Base class for every errorcloak-specific error."""


class FormatterNotFoundError(CloakError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Response formatter '{name}' not found.")
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise wrap the message in quotes
        return str(self.args[0])


class RethrowError(CloakError):
    """The original error type could not be re-created with a sanitized message."""


class SanitizedError(CloakError):
    """Safe-to-expose replacement for an error that carried sensitive data.

    The original error stays reachable through :attr:`original` (and
    ``__cause__``) for internal logging. Formatters only read ``message``,
    ``code``, ``error_id`` and ``redacted_trace``.
    """

    def __init__(
        self,
        message: str,
        code: int = 0,
        original: BaseException | None = None,
        error_id: str | None = None,
        redacted_trace: Iterable[RedactedFrame] = (),
    ) -> None:
        if error_id is not None and not error_id:
            raise ValueError("error_id must be a non-empty string or None")
        super().__init__(message)
        self._message = message
        self._code = code
        self._original = original
        self._error_id = error_id
        self._redacted_trace = tuple(redacted_trace)
        self.__cause__ = original

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> int:
        return self._code

    @property
    def original(self) -> BaseException | None:
        return self._original

    @property
    def error_id(self) -> str | None:
        return self._error_id

    @property
    def redacted_trace(self) -> tuple[RedactedFrame, ...]:
        return self._redacted_trace

    def trace_as_dicts(self) -> list[dict[str, object]]:
        return [frame.to_dict() for frame in self._redacted_trace]

    def trace_as_string(self) -> str:
        return format_trace(self._redacted_trace)

    def __str__(self) -> str:
        return self._message


def error_message(error: BaseException) -> str:
    if isinstance(error, SanitizedError):
        return error.message
    return str(error)


__all__ = [
    "CloakError",
    "FormatterNotFoundError",
    "RethrowError",
    "SanitizedError",
    "error_message",
]
