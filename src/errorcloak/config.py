from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .exceptions import CloakError
from .identifiers import IdentifierMode
from .patterns import (
    DEFAULT_PATTERNS,
    DEFAULT_REPLACEMENT,
    Pattern,
    coerce_pattern,
    invalid_patterns,
)
from .plugins import PluginError, resolve_object

logger = logging.getLogger(__name__)

CONFIG_DEFAULT = "errorcloak.config.yaml"
DEFAULT_TEMPLATE = "{message} [Error ID: {id}]"
DEFAULT_CONTEXT_KEY = "exception_id"
DEFAULT_FORMAT = "simple"

_DATABASE = "A database error occurred."
_CONNECT = "Failed to connect to external service."
_REQUEST = "An external API request failed."
_MAIL = "An email delivery error occurred."
_CACHE = "A cache connection error occurred."

DEFAULT_GENERIC_MESSAGES: dict[str, str] = {
    "sqlite3.DatabaseError": _DATABASE,
    "sqlite3.OperationalError": "A database error occurred while processing your request.",
    "sqlalchemy.exc.OperationalError": _DATABASE,
    "sqlalchemy.exc.DBAPIError": _DATABASE,
    "psycopg2.OperationalError": "A database connection error occurred.",
    "ConnectionError": _CONNECT,
    "ConnectionRefusedError": _CONNECT,
    "socket.gaierror": _CONNECT,
    "ssl.SSLError": "A secure connection error occurred.",
    "urllib.error.URLError": _REQUEST,
    "http.client.HTTPException": _REQUEST,
    "requests.exceptions.ConnectionError": _CONNECT,
    "requests.exceptions.RequestException": _REQUEST,
    "smtplib.SMTPException": _MAIL,
    "smtplib.SMTPAuthenticationError": _MAIL,
    "redis.exceptions.ConnectionError": _CACHE,
    "redis.exceptions.RedisError": "A cache error occurred.",
}

DEFAULT_SANITIZE_TYPES: tuple[str, ...] = tuple(DEFAULT_GENERIC_MESSAGES)


class ConfigError(CloakError, RuntimeError):
    pass


@dataclass
class CloakConfig:
    enabled: bool = True
    debug: bool = False
    patterns: list[Pattern] = field(default_factory=lambda: list(DEFAULT_PATTERNS))
    replacement: str = DEFAULT_REPLACEMENT
    always_sanitize_types: list[str] = field(default_factory=lambda: list(DEFAULT_SANITIZE_TYPES))
    never_sanitize_types: list[str] = field(default_factory=list)
    type_aliases: dict[str, str] = field(default_factory=dict)
    generic_messages: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_GENERIC_MESSAGES)
    )
    sanitize_in_debug: bool = False
    trace_redaction_enabled: bool = True
    # Logging configuration
    log_original: bool = True
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    # Error identifiers
    identifier_mode: IdentifierMode = IdentifierMode.RANDOM
    identifier_template: str | None = DEFAULT_TEMPLATE
    identifier_context_key: str | None = DEFAULT_CONTEXT_KEY
    # Enrichment
    context_callbacks: dict[str, Callable[[], Any]] = field(default_factory=dict)
    exception_tags: dict[str, list[str]] = field(default_factory=dict)
    # Responses
    response_format: str = DEFAULT_FORMAT
    custom_formatters: dict[str, Any] = field(default_factory=dict)
    # Telemetry configuration
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_endpoint: str | None = None
    source_file: Path | None = None

    @classmethod
    def defaults(cls) -> CloakConfig:
        return _apply_environment(cls())


def _resolve_env_var(value: Any, env_var_name: str | None = None) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        env_name = env_var_name or value[1:]  # Remove $ prefix
        return os.getenv(env_name, value)  # Fallback to original if not found
    return value


def _as_bool(value: Any, default: bool) -> bool:
    value = _resolve_env_var(value)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _env_override(name: str) -> str | None:
    value = os.environ.get(name)
    return value if value not in (None, "") else None


def _apply_environment(cfg: CloakConfig) -> CloakConfig:
    enabled = _env_override("ERRORCLOAK_ENABLED")
    if enabled is not None:
        cfg.enabled = _as_bool(enabled, cfg.enabled)
    debug = _env_override("ERRORCLOAK_DEBUG")
    if debug is not None:
        cfg.debug = _as_bool(debug, cfg.debug)
    id_type = _env_override("ERRORCLOAK_ERROR_ID_TYPE")
    if id_type is not None:
        cfg.identifier_mode = _parse_mode(id_type)
    context_key = _env_override("ERRORCLOAK_ERROR_ID_CONTEXT_KEY")
    if context_key is not None:
        cfg.identifier_context_key = context_key
    response_format = _env_override("ERRORCLOAK_RESPONSE_FORMAT")
    if response_format is not None:
        cfg.response_format = response_format
    return cfg


def _parse_mode(value: Any) -> IdentifierMode:
    try:
        return IdentifierMode.parse(_resolve_env_var(value))
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _load_patterns(raw: Any) -> list[Pattern]:
    if raw is None:
        return list(DEFAULT_PATTERNS)
    if not isinstance(raw, list):
        raise ConfigError("'patterns' must be a list")
    try:
        patterns = [coerce_pattern(item) for item in raw]
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
    for source, error in invalid_patterns(patterns):
        logger.warning("pattern %r will be ignored: %s", source, error)
    return patterns


def _mapping(raw: Any, name: str) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return cast(dict[str, Any], raw)


def _load_tags(raw: Any) -> dict[str, list[str]]:
    tags: dict[str, list[str]] = {}
    for category, value in _mapping(raw, 'context.tags').items():
        if value is None:
            value = []
        elif isinstance(value, str):
            value = [value]
        elif not isinstance(value, list):
            raise ConfigError(f"tags for '{category}' must be a list of strings")
        tags[str(category)] = [str(tag) for tag in value]
    return tags


def _load_callbacks(raw: dict[str, Any]) -> dict[str, Callable[[], Any]]:
    callbacks: dict[str, Callable[[], Any]] = {}
    for name, spec in raw.items():
        target = spec
        if isinstance(spec, str):
            try:
                target = resolve_object(spec)
            except PluginError as exc:
                raise ConfigError(f"context callback '{name}': {exc}") from exc
        if not callable(target):
            raise ConfigError(f"context callback '{name}' is not callable")
        callbacks[str(name)] = cast(Callable[[], Any], target)
    return callbacks


def load_config(path: str | Path) -> CloakConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw = cast(dict[str, Any], yaml.safe_load(p.read_text()) or {})
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    types = _mapping(raw.get('types'), 'types')
    trace_config = _mapping(raw.get('trace'), 'trace')
    logging_config = _mapping(raw.get('logging'), 'logging')
    error_id = _mapping(raw.get('error_id'), 'error_id')
    context = _mapping(raw.get('context'), 'context')
    response = _mapping(raw.get('response'), 'response')
    telemetry = _mapping(raw.get('telemetry'), 'telemetry')

    generic_messages = raw.get('generic_messages')
    if generic_messages is not None:
        generic_messages = _mapping(generic_messages, 'generic_messages')
    always = types.get('always')

    cfg = CloakConfig(
        enabled=_as_bool(raw.get('enabled'), True),
        debug=_as_bool(raw.get('debug'), False),
        patterns=_load_patterns(raw.get('patterns')),
        replacement=str(_resolve_env_var(raw.get('replacement', DEFAULT_REPLACEMENT))),
        # Omitting a section keeps the built-in type lists; an empty list clears them.
        always_sanitize_types=(
            list(DEFAULT_SANITIZE_TYPES) if always is None else [str(t) for t in always]
        ),
        never_sanitize_types=[str(t) for t in types.get('never', []) or []],
        type_aliases={
            str(k): str(v) for k, v in _mapping(types.get('aliases'), 'types.aliases').items()
        },
        generic_messages=(
            dict(DEFAULT_GENERIC_MESSAGES)
            if generic_messages is None
            else {str(k): str(v) for k, v in generic_messages.items()}
        ),
        sanitize_in_debug=_as_bool(raw.get('sanitize_in_debug'), False),
        trace_redaction_enabled=_as_bool(trace_config.get('redact'), True),
        # Logging configuration
        log_original=_as_bool(logging_config.get('log_original'), True),
        logging_json_enabled=_as_bool(logging_config.get('json_enabled'), False),
        logging_level=str(logging_config.get('level', 'INFO')),
        identifier_mode=_parse_mode(error_id.get('mode', 'uuid')),
        identifier_template=error_id.get('template', DEFAULT_TEMPLATE),
        identifier_context_key=_resolve_env_var(
            error_id.get('context_key', DEFAULT_CONTEXT_KEY)
        ),
        context_callbacks=_load_callbacks(_mapping(context.get('callbacks'), 'context.callbacks')),
        exception_tags=_load_tags(context.get('tags')),
        response_format=str(_resolve_env_var(response.get('format', DEFAULT_FORMAT))),
        custom_formatters=_mapping(response.get('custom_formatters'), 'response.custom_formatters'),
        telemetry_enabled=_as_bool(telemetry.get('enabled'), False),
        telemetry_exporter=str(telemetry.get('exporter', 'console')),
        telemetry_endpoint=_resolve_env_var(telemetry.get('endpoint')),
        source_file=p,
    )
    return _apply_environment(cfg)


__all__ = [
    "CONFIG_DEFAULT",
    "CloakConfig",
    "ConfigError",
    "DEFAULT_GENERIC_MESSAGES",
    "DEFAULT_SANITIZE_TYPES",
    "load_config",
]
