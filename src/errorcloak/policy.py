"""Sanitization policy: decides whether an error is scrubbed and builds the result.

Decision order for :meth:`SanitizationPolicy.sanitize`:

1. category listed in ``never_sanitize_types`` -> error returned untouched
2. host in debug mode and ``sanitize_in_debug`` off -> untouched
3. category listed in ``always_sanitize_types`` -> sanitized
4. message matches at least one pattern -> sanitized, otherwise untouched

Sanitizing issues an identifier, runs context enrichment, picks the generic
message for the category (or pattern-substitutes the raw message), applies
the identifier template and redacts the stack trace. Enrichment failures are
swallowed one by one and never stop the result from being produced.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Union

from .config import CloakConfig
from .context import ContextStore, enrich, safe_add
from .errors import Classifier, ErrorCategory, classify_error, error_code
from .exceptions import SanitizedError
from .identifiers import IdentifierMode, issue
from .models import RawFrame, RedactedFrame
from .patterns import DEFAULT_REPLACEMENT, Pattern, any_matches, substitute_all
from .trace import extract_frames, redact_trace

DebugFlag = Union[bool, Callable[[], bool]]

_TEMPLATE_FIELDS = re.compile(r"\{(message|id)\}")


def render_template(template: str, message: str, error_id: str) -> str:
    values = {"message": message, "id": error_id}
    return _TEMPLATE_FIELDS.sub(lambda m: values[m.group(1)], template)


class SanitizationPolicy:
    def __init__(
        self,
        patterns: Iterable[Pattern],
        replacement: str = DEFAULT_REPLACEMENT,
        *,
        always_sanitize_types: Iterable[str] = (),
        never_sanitize_types: Iterable[str] = (),
        generic_messages: Mapping[str, str] | None = None,
        sanitize_in_debug: bool = False,
        debug: DebugFlag = False,
        identifier_mode: str | IdentifierMode | None = IdentifierMode.NONE,
        identifier_template: str | None = None,
        identifier_context_key: str | None = None,
        trace_redaction_enabled: bool = True,
        context_callbacks: Mapping[str, Callable[[], Any]] | None = None,
        exception_tags: Mapping[str, Iterable[str]] | None = None,
        context_store: ContextStore | None = None,
        classifier: Callable[[BaseException], ErrorCategory] = classify_error,
        frame_source: Callable[[BaseException], Iterable[RawFrame]] = extract_frames,
    ) -> None:
        self._patterns: tuple[Pattern, ...] = tuple(patterns)
        self._replacement = replacement
        self._always = frozenset(always_sanitize_types)
        self._never = frozenset(never_sanitize_types)
        self._generic_messages = dict(generic_messages or {})
        self._sanitize_in_debug = sanitize_in_debug
        self._debug = debug
        self._identifier_mode = IdentifierMode.parse(identifier_mode)
        self._identifier_template = identifier_template
        self._identifier_context_key = identifier_context_key
        self._trace_redaction_enabled = trace_redaction_enabled
        self._context_callbacks = dict(context_callbacks or {})
        self._exception_tags = {k: tuple(v) for k, v in (exception_tags or {}).items()}
        self._store = context_store
        self._classify = classifier
        self._frame_source = frame_source

    @classmethod
    def from_config(
        cls,
        cfg: CloakConfig,
        *,
        context_store: ContextStore | None = None,
        classifier: Callable[[BaseException], ErrorCategory] | None = None,
        debug: DebugFlag | None = None,
    ) -> SanitizationPolicy:
        if classifier is None:
            classifier = Classifier(cfg.type_aliases) if cfg.type_aliases else classify_error
        return cls(
            cfg.patterns,
            cfg.replacement,
            always_sanitize_types=cfg.always_sanitize_types,
            never_sanitize_types=cfg.never_sanitize_types,
            generic_messages=cfg.generic_messages,
            sanitize_in_debug=cfg.sanitize_in_debug,
            debug=cfg.debug if debug is None else debug,
            identifier_mode=cfg.identifier_mode,
            identifier_template=cfg.identifier_template,
            identifier_context_key=cfg.identifier_context_key,
            trace_redaction_enabled=cfg.trace_redaction_enabled,
            context_callbacks=cfg.context_callbacks,
            exception_tags=cfg.exception_tags,
            context_store=context_store,
            classifier=classifier,
        )

    @property
    def patterns(self) -> tuple[Pattern, ...]:
        return self._patterns

    @property
    def replacement(self) -> str:
        return self._replacement

    @property
    def context_store(self) -> ContextStore | None:
        return self._store

    def classify(self, error: BaseException) -> ErrorCategory:
        return self._classify(error)

    def _in_debug(self) -> bool:
        return bool(self._debug()) if callable(self._debug) else bool(self._debug)

    def _should_sanitize(self, error: BaseException, category: ErrorCategory) -> bool:
        if category.name in self._never:
            return False
        if self._in_debug() and not self._sanitize_in_debug:
            return False
        if category.name in self._always:
            return True
        return self.contains_sensitive_data(str(error))

    def should_sanitize(self, error: BaseException) -> bool:
        return self._should_sanitize(error, self._classify(error))

    def contains_sensitive_data(self, message: str) -> bool:
        return any_matches(message, self._patterns)

    def sanitize_message(self, message: str) -> str:
        return substitute_all(message, self._patterns, self._replacement)

    def redact_trace(self, error: BaseException) -> list[RedactedFrame]:
        return redact_trace(self._frame_source(error), self._patterns, self._replacement)

    def sanitize(self, error: BaseException) -> BaseException:
        """Return a :class:`SanitizedError` for ``error``, or ``error`` itself.

        The same instance is returned whenever the policy decides not to
        sanitize; callers can rely on an identity check.
        """
        category = self._classify(error)
        if not self._should_sanitize(error, category):
            return error

        error_id = issue(self._identifier_mode)
        if error_id is not None and self._identifier_context_key:
            safe_add(self._store, self._identifier_context_key, error_id)

        enrich(self._store, self._context_callbacks, self._exception_tags.get(category.name))

        generic = self._generic_messages.get(category.name)
        message = generic if generic is not None else self.sanitize_message(str(error))
        if error_id is not None and self._identifier_template:
            message = render_template(self._identifier_template, message, error_id)

        trace = self.redact_trace(error) if self._trace_redaction_enabled else []

        return SanitizedError(
            message=message,
            code=error_code(error),
            original=error,
            error_id=error_id,
            redacted_trace=trace,
        )


__all__ = ["DebugFlag", "SanitizationPolicy", "render_template"]
