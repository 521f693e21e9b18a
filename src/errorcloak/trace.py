"""Stack trace extraction and redaction."""

from __future__ import annotations

import traceback
from collections.abc import Iterable, Mapping
from types import TracebackType
from typing import Any

from .models import RawFrame, RedactedFrame
from .patterns import DEFAULT_REPLACEMENT, Pattern, substitute_all

UNKNOWN_FILE = "unknown"


def _scope_of(code: Any) -> str | None:
    # co_qualname only exists on Python 3.11+
    qualname = getattr(code, "co_qualname", None)
    if not isinstance(qualname, str) or "." not in qualname:
        return None
    scope = qualname.rpartition(".")[0]
    return scope or None


def extract_frames(error: BaseException) -> list[RawFrame]:
    """Walk ``error.__traceback__`` and describe each frame.

    Frames are returned outermost first. Local variables are never read.
    """
    tb: TracebackType | None = error.__traceback__
    frames: list[RawFrame] = []
    for frame, lineno in traceback.walk_tb(tb):
        code = frame.f_code
        raw: RawFrame = {"file": code.co_filename, "line": lineno, "operation": code.co_name}
        scope = _scope_of(code)
        if scope is not None:
            raw["scope"] = scope
        frames.append(raw)
    return frames


def redact_frame(
    frame: Mapping[str, Any],
    patterns: Iterable[Pattern],
    replacement: str = DEFAULT_REPLACEMENT,
) -> RedactedFrame:
    file = frame.get("file")
    if not isinstance(file, str):
        file = UNKNOWN_FILE
    line = frame.get("line")
    if not isinstance(line, int) or isinstance(line, bool) or line < 0:
        line = 0
    scope = frame.get("scope")
    operation = frame.get("operation")
    return RedactedFrame(
        file=substitute_all(file, patterns, replacement),
        line=line,
        scope=scope if isinstance(scope, str) else None,
        operation=operation if isinstance(operation, str) else None,
    )


def redact_trace(
    frames: Iterable[Mapping[str, Any]],
    patterns: Iterable[Pattern],
    replacement: str = DEFAULT_REPLACEMENT,
) -> list[RedactedFrame]:
    """Redact ``frames`` one-to-one, preserving order.

    File paths go through every pattern, invalid fields fall back to
    ``"unknown"`` / ``0`` and argument data is dropped.
    """
    rules = list(patterns)
    out: list[RedactedFrame] = []
    for frame in frames:
        if not isinstance(frame, Mapping):
            frame = {}
        out.append(redact_frame(frame, rules, replacement))
    return out


def format_trace(frames: Iterable[RedactedFrame]) -> str:
    lines: list[str] = []
    for index, frame in enumerate(frames):
        entry = f"#{index} {frame.file}({frame.line}): "
        if frame.scope is not None:
            entry += f"{frame.scope}->"
        if frame.operation is not None:
            entry += f"{frame.operation}()"
        lines.append(entry.rstrip())
    return "\n".join(lines) + ("\n" if lines else "")


__all__ = [
    "UNKNOWN_FILE",
    "extract_frames",
    "format_trace",
    "redact_frame",
    "redact_trace",
]
