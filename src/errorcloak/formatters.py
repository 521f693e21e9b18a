"""Response formatters turning (sanitized) errors into JSON response payloads.

Built-in formats:

- ``simple``        ``{"error": ..., "error_id"?: ..., "trace"?: [...]}``
- ``json-api``      JSON:API ``errors`` array
- ``problem-json``  RFC 7807 problem details
- ``hal``           HAL with ``_links.self`` and ``_embedded.trace``
- ``hydra``         JSON-LD / Hydra ``hydra:Error``

Identifiers and traces are only read from :class:`SanitizedError`; a raw
error passed through a formatter contributes its message only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlsplit, urlunsplit

from .errors import error_code
from .exceptions import SanitizedError, error_message

STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def status_title(status: int) -> str:
    return STATUS_TITLES.get(status, "Error")


@dataclass
class FormattedResponse:
    body: dict[str, Any]
    status: int = 500
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "application/json")

    def json(self, **kwargs: Any) -> str:
        return json.dumps(self.body, **kwargs)


class ResponseFormatter(Protocol):
    def format(
        self,
        error: BaseException,
        status: int = 500,
        include_trace: bool = False,
        headers: dict[str, str] | None = None,
        request: Any = None,
    ) -> FormattedResponse: ...

    def content_type(self) -> str: ...


def _error_id(error: BaseException) -> str | None:
    if isinstance(error, SanitizedError):
        return error.error_id
    return None


def _trace(error: BaseException, include_trace: bool) -> list[dict[str, Any]] | None:
    if include_trace and isinstance(error, SanitizedError):
        return error.trace_as_dicts()
    return None


def request_url(request: Any) -> str:
    """URL of ``request`` without its query string, or an empty string."""
    url = getattr(request, "url", None) if request is not None else None
    if url is None:
        return ""
    parts = urlsplit(str(url))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class _BaseFormatter:
    CONTENT_TYPE = "application/json"
    inject_content_type = True

    def content_type(self) -> str:
        return self.CONTENT_TYPE

    def build(
        self, error: BaseException, status: int, include_trace: bool, request: Any
    ) -> dict[str, Any]:
        raise NotImplementedError

    def format(
        self,
        error: BaseException,
        status: int = 500,
        include_trace: bool = False,
        headers: dict[str, str] | None = None,
        request: Any = None,
    ) -> FormattedResponse:
        out_headers = dict(headers or {})
        if self.inject_content_type:
            out_headers["Content-Type"] = self.content_type()
        body = self.build(error, status, include_trace, request)
        return FormattedResponse(body=body, status=status, headers=out_headers)


class SimpleFormatter(_BaseFormatter):
    inject_content_type = False

    def build(
        self, error: BaseException, status: int, include_trace: bool, request: Any
    ) -> dict[str, Any]:
        data: dict[str, Any] = {"error": error_message(error)}
        error_id = _error_id(error)
        if error_id is not None:
            data["error_id"] = error_id
        trace = _trace(error, include_trace)
        if trace is not None:
            data["trace"] = trace
        return data


class JsonApiFormatter(_BaseFormatter):
    CONTENT_TYPE = "application/vnd.api+json"

    def build(
        self, error: BaseException, status: int, include_trace: bool, request: Any
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "status": str(status),
            "title": status_title(status),
            "detail": error_message(error),
        }
        error_id = _error_id(error)
        if error_id is not None:
            entry["id"] = error_id
        code = error_code(error)
        if code != 0:
            entry["code"] = str(code)
        trace = _trace(error, include_trace)
        if trace is not None:
            entry["meta"] = {"trace": trace}
        return {"errors": [entry]}


class ProblemJsonFormatter(_BaseFormatter):
    CONTENT_TYPE = "application/problem+json"

    def build(
        self, error: BaseException, status: int, include_trace: bool, request: Any
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "about:blank",
            "title": status_title(status),
            "status": status,
            "detail": error_message(error),
        }
        error_id = _error_id(error)
        if error_id is not None:
            data["instance"] = f"urn:uuid:{error_id}"
        trace = _trace(error, include_trace)
        if trace is not None:
            data["trace"] = trace
        return data


class HalFormatter(_BaseFormatter):
    CONTENT_TYPE = "application/hal+json"

    def build(
        self, error: BaseException, status: int, include_trace: bool, request: Any
    ) -> dict[str, Any]:
        data: dict[str, Any] = {"message": error_message(error), "status": status}
        error_id = _error_id(error)
        if error_id is not None:
            data["error_id"] = error_id
        trace = _trace(error, include_trace)
        if trace is not None:
            data["_embedded"] = {"trace": trace}
        data["_links"] = {"self": {"href": request_url(request)}}
        return data


class HydraFormatter(_BaseFormatter):
    CONTENT_TYPE = "application/ld+json"

    def build(
        self, error: BaseException, status: int, include_trace: bool, request: Any
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            "@context": "/contexts/Error",
            "@type": "hydra:Error",
            "hydra:title": status_title(status),
            "hydra:description": error_message(error),
        }
        error_id = _error_id(error)
        if error_id is not None:
            data["@id"] = f"urn:uuid:{error_id}"
        trace = _trace(error, include_trace)
        if trace is not None:
            data["trace"] = trace
        return data


__all__ = [
    "STATUS_TITLES",
    "FormattedResponse",
    "HalFormatter",
    "HydraFormatter",
    "JsonApiFormatter",
    "ProblemJsonFormatter",
    "ResponseFormatter",
    "SimpleFormatter",
    "request_url",
    "status_title",
]
