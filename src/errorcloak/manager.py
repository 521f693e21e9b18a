"""High-level entry point tying the policy, logging and formatters together.

from errorcloak import CloakManager, load_config

manager = CloakManager.from_config(load_config('errorcloak.config.yaml'))
try:
    ...
except Exception as exc:
    response = manager.to_response(exc, status=500, format_name='problem-json')
    return response.body, response.status, response.headers

``rethrow`` keeps the exception type intact for callers that dispatch on it:

    raise manager.rethrow(exc) from None
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .config import CloakConfig
from .context import ContextStore
from .errors import ErrorCategory, error_cause, error_code, error_location, type_name
from .exceptions import RethrowError, error_message
from .formatters import FormattedResponse
from .logging import get_logger
from .policy import DebugFlag, SanitizationPolicy
from .registry import FormatterRegistry


class ErrorLogger(Protocol):
    def log(self, level: str, message: str, /, **payload: Any) -> None: ...


@dataclass(frozen=True)
class RequestContext:
    url: str
    method: str = "GET"


ORIGINAL_LOG_MESSAGE = "Original exception before sanitization"


def _request_payload(request: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    url = getattr(request, "url", None)
    if url is not None:
        payload["url"] = str(url)
    method = getattr(request, "method", None)
    if method is not None:
        payload["method"] = str(method)
    return payload


class CloakManager:
    def __init__(
        self,
        policy: SanitizationPolicy,
        *,
        enabled: bool = True,
        log_original: bool = True,
        formatter_registry: FormatterRegistry | None = None,
        logger: ErrorLogger | None = None,
    ) -> None:
        self._policy = policy
        self._enabled = enabled
        self._log_original = log_original
        self._registry = formatter_registry or FormatterRegistry()
        self._logger = logger

    @classmethod
    def from_config(
        cls,
        cfg: CloakConfig | None = None,
        *,
        context_store: ContextStore | None = None,
        classifier: Callable[[BaseException], ErrorCategory] | None = None,
        debug: DebugFlag | None = None,
        logger: ErrorLogger | None = None,
        load_plugins: bool = True,
    ) -> CloakManager:
        cfg = cfg or CloakConfig.defaults()
        policy = SanitizationPolicy.from_config(
            cfg, context_store=context_store, classifier=classifier, debug=debug
        )
        registry = FormatterRegistry(
            cfg.custom_formatters,
            default_format=cfg.response_format,
            load_plugins=load_plugins,
        )
        return cls(
            policy,
            enabled=cfg.enabled,
            log_original=cfg.log_original,
            formatter_registry=registry,
            logger=logger,
        )

    @property
    def policy(self) -> SanitizationPolicy:
        return self._policy

    @property
    def formatter_registry(self) -> FormatterRegistry:
        return self._registry

    def is_enabled(self) -> bool:
        return self._enabled

    def _emit_original(self, error: BaseException, request: Any) -> None:
        file, line = error_location(error)
        payload: dict[str, Any] = {
            "type": type_name(type(error)),
            "message": str(error),
            "file": file,
            "line": line,
        }
        if request is not None:
            payload.update(_request_payload(request))
        logger = self._logger if self._logger is not None else get_logger()
        logger.log("error", ORIGINAL_LOG_MESSAGE, **payload)

    def sanitize_for_rendering(self, error: BaseException, request: Any = None) -> BaseException:
        """Log the original (when configured) and return the policy's result."""
        if not self.is_enabled():
            return error
        if self._log_original:
            self._emit_original(error, request)
        return self._policy.sanitize(error)

    def to_response(
        self,
        error: BaseException,
        request: Any = None,
        status: int = 500,
        include_trace: bool = False,
        headers: dict[str, str] | None = None,
        format_name: str | None = None,
    ) -> FormattedResponse:
        sanitized = self.sanitize_for_rendering(error, request)
        name = format_name if format_name is not None else self._registry.default_format
        formatter = self._registry.get(name)
        kwargs: dict[str, Any] = {
            "status": status,
            "include_trace": include_trace,
            "headers": headers,
        }
        if self._registry.accepts_request(name):
            kwargs["request"] = request
        return formatter.format(sanitized, **kwargs)

    def rethrow(self, error: BaseException, request: Any = None) -> BaseException:
        """Return a sanitized error of the same type as ``error``.

        When nothing was sanitized the input itself is returned. Raises
        :class:`RethrowError` if the type cannot be rebuilt from
        ``(message, code, cause)``.
        """
        sanitized = self.sanitize_for_rendering(error, request)
        if sanitized is error:
            return error
        category = self._policy.classify(error)
        try:
            rebuilt = category.build(
                error_message(sanitized), error_code(error), error_cause(error)
            )
        except Exception as exc:
            label = category.type_name or category.name
            raise RethrowError(
                f"Cannot re-create {label} with a sanitized message: {exc}"
            ) from exc
        if isinstance(error, OSError) and isinstance(rebuilt, OSError):
            # filename and filename2 are not pattern-scrubbed, so only errno carries over
            rebuilt.errno = error.errno
        return rebuilt


_DEFAULT: CloakManager | None = None


def get_manager() -> CloakManager:
    global _DEFAULT  # noqa: PLW0603
    if _DEFAULT is None:
        _DEFAULT = CloakManager.from_config()
    return _DEFAULT


def configure(cfg: CloakConfig | None = None, **kwargs: Any) -> CloakManager:
    """Replace the process-wide manager used by :func:`rethrow`."""
    global _DEFAULT  # noqa: PLW0603
    _DEFAULT = CloakManager.from_config(cfg, **kwargs)
    return _DEFAULT


def rethrow(error: BaseException, request: Any = None) -> BaseException:
    return get_manager().rethrow(error, request)


__all__ = [
    "ORIGINAL_LOG_MESSAGE",
    "CloakManager",
    "ErrorLogger",
    "RequestContext",
    "configure",
    "get_manager",
    "rethrow",
]
