"""errorcloak - scrub credentials and internal details from errors before they leave the process.

High-level public API (stable):

from errorcloak import CloakManager, load_config

manager = CloakManager.from_config(load_config('errorcloak.config.yaml'))
response = manager.to_response(exc, status=500, format_name='problem-json')

# Same exception type, sanitized message:
raise manager.rethrow(exc) from None

Module-level helpers (``configure``, ``get_manager``, ``rethrow``) operate on a
process-wide manager built from the default configuration unless
``configure`` is called first.
"""

from __future__ import annotations

from .config import CloakConfig, ConfigError, load_config
from .context import InMemoryContextStore
from .errors import Classifier, ErrorCategory, classify_error
from .exceptions import CloakError, FormatterNotFoundError, RethrowError, SanitizedError
from .identifiers import IdentifierMode
from .manager import CloakManager, RequestContext, configure, get_manager, rethrow
from .models import RedactedFrame
from .patterns import PatternRule
from .policy import SanitizationPolicy

__version__ = "0.1.0"

__all__ = [
    "Classifier",
    "CloakConfig",
    "CloakError",
    "CloakManager",
    "ConfigError",
    "ErrorCategory",
    "FormatterNotFoundError",
    "IdentifierMode",
    "InMemoryContextStore",
    "PatternRule",
    "RedactedFrame",
    "RequestContext",
    "RethrowError",
    "SanitizationPolicy",
    "SanitizedError",
    "classify_error",
    "configure",
    "get_manager",
    "load_config",
    "rethrow",
    "__version__",
]
