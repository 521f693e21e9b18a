from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict


class RawFrame(TypedDict, total=False):
    """Call-stack frame as produced by :func:`errorcloak.trace.extract_frames`.

    Frames supplied by callers may hold anything under these keys (and an
    ``args`` entry); the redactor validates every field.
    """

    file: Any
    line: Any
    scope: Any
    operation: Any
    args: Any


@dataclass(frozen=True)
class RedactedFrame:
    """A stack frame that is safe to expose.

    There is deliberately no field for call arguments.
    """

    file: str
    line: int
    scope: str | None = None
    operation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"file": self.file, "line": self.line}
        if self.scope is not None:
            out["scope"] = self.scope
        if self.operation is not None:
            out["operation"] = self.operation
        return out


__all__ = ["RawFrame", "RedactedFrame"]
