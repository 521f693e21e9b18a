from __future__ import annotations

import json

import pytest

from errorcloak.exceptions import SanitizedError
from errorcloak.formatters import (
    FormattedResponse,
    HalFormatter,
    HydraFormatter,
    JsonApiFormatter,
    ProblemJsonFormatter,
    SimpleFormatter,
    request_url,
    status_title,
)
from errorcloak.manager import RequestContext
from errorcloak.models import RedactedFrame

TRACE = (RedactedFrame("[REDACTED]/app.py", 12, scope="Repo", operation="load"),)


def _sanitized(error_id: str | None = "abc-123", code: int = 0) -> SanitizedError:
    return SanitizedError(
        "Connection failed: [REDACTED]",
        code=code,
        original=RuntimeError("mysql://root:pw@localhost/db"),
        error_id=error_id,
        redacted_trace=TRACE,
    )


def test_simple_with_identifier():
    response = SimpleFormatter().format(_sanitized())
    assert response.body == {"error": "Connection failed: [REDACTED]", "error_id": "abc-123"}
    assert response.status == 500
    assert "Content-Type" not in response.headers


def test_simple_omits_identifier_when_absent():
    response = SimpleFormatter().format(_sanitized(error_id=None))
    assert response.body == {"error": "Connection failed: [REDACTED]"}


def test_simple_trace_only_when_requested():
    assert "trace" not in SimpleFormatter().format(_sanitized()).body
    body = SimpleFormatter().format(_sanitized(), include_trace=True).body
    assert body["trace"] == [
        {"file": "[REDACTED]/app.py", "line": 12, "scope": "Repo", "operation": "load"}
    ]


def test_raw_error_contributes_message_only():
    error = RuntimeError("plain failure")
    error.error_id = "should-not-leak"  # type: ignore[attr-defined]
    body = SimpleFormatter().format(error, include_trace=True).body
    assert body == {"error": "plain failure"}


def test_json_api_document():
    response = JsonApiFormatter().format(_sanitized(code=42), status=503, include_trace=True)
    (entry,) = response.body["errors"]
    assert entry["status"] == "503"
    assert entry["title"] == "Service Unavailable"
    assert entry["detail"] == "Connection failed: [REDACTED]"
    assert entry["id"] == "abc-123"
    assert entry["code"] == "42"
    assert entry["meta"]["trace"][0]["line"] == 12
    assert response.headers["Content-Type"] == "application/vnd.api+json"


def test_json_api_omits_zero_code():
    (entry,) = JsonApiFormatter().format(_sanitized()).body["errors"]
    assert "code" not in entry
    assert "meta" not in entry


def test_problem_json_instance_is_urn():
    response = ProblemJsonFormatter().format(_sanitized(), status=404)
    assert response.body == {
        "type": "about:blank",
        "title": "Not Found",
        "status": 404,
        "detail": "Connection failed: [REDACTED]",
        "instance": "urn:uuid:abc-123",
    }
    assert response.content_type == "application/problem+json"


def test_problem_json_without_identifier():
    body = ProblemJsonFormatter().format(_sanitized(error_id=None)).body
    assert "instance" not in body


def test_hal_links_and_embedded_trace():
    request = RequestContext(url="https://api.example.com/orders/7?token=abc", method="POST")
    body = HalFormatter().format(_sanitized(), include_trace=True, request=request).body
    assert body["message"] == "Connection failed: [REDACTED]"
    assert body["status"] == 500
    assert body["error_id"] == "abc-123"
    assert body["_links"] == {"self": {"href": "https://api.example.com/orders/7"}}
    assert body["_embedded"]["trace"][0]["file"] == "[REDACTED]/app.py"


def test_hal_without_request_has_empty_href():
    body = HalFormatter().format(_sanitized()).body
    assert body["_links"]["self"]["href"] == ""


def test_hydra_document():
    response = HydraFormatter().format(_sanitized(), status=400)
    assert response.body == {
        "@context": "/contexts/Error",
        "@type": "hydra:Error",
        "hydra:title": "Bad Request",
        "hydra:description": "Connection failed: [REDACTED]",
        "@id": "urn:uuid:abc-123",
    }
    assert response.headers["Content-Type"] == "application/ld+json"


def test_caller_headers_are_kept_and_content_type_wins():
    response = ProblemJsonFormatter().format(
        _sanitized(), headers={"X-Request-Id": "r1", "Content-Type": "text/plain"}
    )
    assert response.headers == {
        "X-Request-Id": "r1",
        "Content-Type": "application/problem+json",
    }


@pytest.mark.parametrize(
    "status, title",
    [(401, "Unauthorized"), (422, "Unprocessable Entity"), (500, "Internal Server Error"), (418, "Error")],
)
def test_status_titles(status: int, title: str):
    assert status_title(status) == title


def test_request_url_helpers():
    assert request_url(None) == ""
    assert request_url(object()) == ""
    assert request_url(RequestContext(url="http://h/p?q=1#frag")) == "http://h/p"


def test_formatted_response_json():
    response = FormattedResponse(body={"error": "x"}, status=500)
    assert json.loads(response.json()) == {"error": "x"}
    assert response.content_type == "application/json"
