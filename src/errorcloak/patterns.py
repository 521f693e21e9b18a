"""Ordered regex rules used to detect and redact sensitive text.

Public API:
- matches(text, pattern) -> bool
- substitute(text, pattern, replacement) -> str
- any_matches(text, patterns) -> bool
- substitute_all(text, patterns, replacement) -> str
- invalid_patterns(patterns) -> list[tuple[str, str]]

Plain string patterns compile case-insensitively. Use ``PatternRule`` with
``ignore_case=False`` to opt a single rule out. A malformed rule never raises:
it matches nothing and leaves text untouched.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from typing import Union

logger = logging.getLogger(__name__)

DEFAULT_REPLACEMENT = "[REDACTED]"


@dataclass(frozen=True)
class PatternRule:
    regex: str
    ignore_case: bool = True


Pattern = Union[str, PatternRule, "re.Pattern[str]"]


@lru_cache(maxsize=512)
def _compile(regex: str, flags: int) -> re.Pattern[str] | None:
    try:
        return re.compile(regex, flags)
    except re.error as exc:
        logger.warning("ignoring malformed pattern %r: %s", regex, exc)
        return None


def compile_pattern(pattern: Pattern) -> re.Pattern[str] | None:
    """Return the compiled form of ``pattern`` or None if it is malformed."""
    if isinstance(pattern, re.Pattern):
        return pattern
    if isinstance(pattern, PatternRule):
        return _compile(pattern.regex, re.IGNORECASE if pattern.ignore_case else 0)
    return _compile(pattern, re.IGNORECASE)


def pattern_source(pattern: Pattern) -> str:
    if isinstance(pattern, re.Pattern):
        return pattern.pattern
    if isinstance(pattern, PatternRule):
        return pattern.regex
    return pattern


def matches(text: str, pattern: Pattern) -> bool:
    compiled = compile_pattern(pattern)
    if compiled is None:
        return False
    return compiled.search(text) is not None


def substitute(text: str, pattern: Pattern, replacement: str = DEFAULT_REPLACEMENT) -> str:
    """Replace every match of ``pattern`` in ``text`` with ``replacement``.

    The replacement is inserted literally; group references such as ``\\1``
    are not expanded.
    """
    compiled = compile_pattern(pattern)
    if compiled is None or not text:
        return text
    return compiled.sub(lambda _m: replacement, text)


def any_matches(text: str, patterns: Iterable[Pattern]) -> bool:
    return any(matches(text, pattern) for pattern in patterns)


def substitute_all(
    text: str, patterns: Iterable[Pattern], replacement: str = DEFAULT_REPLACEMENT
) -> str:
    redacted = text
    for pattern in patterns:
        redacted = substitute(redacted, pattern, replacement)
    return redacted


def invalid_patterns(patterns: Iterable[Pattern]) -> list[tuple[str, str]]:
    """List ``(source, error)`` pairs for rules that fail to compile."""
    problems: list[tuple[str, str]] = []
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            continue
        source = pattern_source(pattern)
        flags = re.IGNORECASE
        if isinstance(pattern, PatternRule) and not pattern.ignore_case:
            flags = 0
        try:
            re.compile(source, flags)
        except re.error as exc:
            problems.append((source, str(exc)))
    return problems


def coerce_pattern(raw: object) -> Pattern:
    """Build a rule from a configuration entry (string or mapping)."""
    if isinstance(raw, (str, PatternRule, re.Pattern)):
        return raw
    if isinstance(raw, dict):
        regex = raw.get("regex", raw.get("pattern"))
        if not isinstance(regex, str):
            raise TypeError(f"pattern entry is missing a 'regex' string: {raw!r}")
        return PatternRule(regex=regex, ignore_case=bool(raw.get("ignore_case", True)))
    raise TypeError(f"unsupported pattern entry: {raw!r}")


# Mirrors the patterns shipped with the default configuration.
DEFAULT_PATTERNS: tuple[str, ...] = (
    # Database connection strings
    r"mysql://([^:]+):([^@]+)@([^/]+)/(.+)",
    r"postgres(?:ql)?://([^:]+):([^@]+)@([^/]+)/(.+)",
    r"mongodb(?:\+srv)?://([^:]+):([^@]+)@([^/]+)/(.+)",
    r"redis://([^:]+):([^@]+)@([^/]+)",
    # DSN fragments
    r"host=([^\s;]+)",
    r"user=([^\s;]+)",
    r"password=([^\s;]+)",
    r"dbname=([^\s;]+)",
    # API keys and tokens
    r"api[_-]?key[\"']?\s*[:=]\s*[\"']?([a-zA-Z0-9_\-]+)",
    r"token[\"']?\s*[:=]\s*[\"']?([a-zA-Z0-9_\-\.]+)",
    r"bearer\s+([a-zA-Z0-9_\-\.]+)",
    # AWS credentials
    r"aws[_-]?access[_-]?key[_-]?id[\"']?\s*[:=]\s*[\"']?([A-Z0-9]+)",
    r"aws[_-]?secret[_-]?access[_-]?key[\"']?\s*[:=]\s*[\"']?([A-Za-z0-9/\+]+)",
    # Key material
    r"-----BEGIN\s+(RSA\s+)?PRIVATE\s+KEY-----[\s\S]+?-----END\s+(RSA\s+)?PRIVATE\s+KEY-----",
    r"-----BEGIN\s+CERTIFICATE-----[\s\S]+?-----END\s+CERTIFICATE-----",
    # E-mail addresses and IPv4 addresses
    r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
    r"\b(?:\d{1,3}\.){3}\d{1,3}\b",
    # Home directories
    r"/home/([^/\s]+)",
    r"/Users/([^/\s]+)",
    r"C:\\Users\\([^\\]+)",
)


__all__ = [
    "DEFAULT_PATTERNS",
    "DEFAULT_REPLACEMENT",
    "Pattern",
    "PatternRule",
    "any_matches",
    "coerce_pattern",
    "compile_pattern",
    "invalid_patterns",
    "matches",
    "pattern_source",
    "substitute",
    "substitute_all",
]
