"""Tests for the HTTP transport."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from sparqlbridge.errors import NetworkError
from sparqlbridge.transport import USER_AGENT, HttpTransport, TransportResponse


def _mock_session(response=None, error=None):
    session = MagicMock(spec=requests.Session)
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.return_value = response
    return session


def _mock_response(status_code=200, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.headers = headers or {"Content-Type": "application/sparql-results+json"}
    return resp


def test_request_returns_error_statuses():
    session = _mock_session(_mock_response(500, '{"message": "boom"}'))
    transport = HttpTransport(session)

    response = transport.request("POST", "http://example.org/sparql", data=b"ASK {}")

    assert response.status_code == 500
    assert response.ok is False
    assert response.server_message() == "boom"
    _, kwargs = session.request.call_args
    assert kwargs["headers"]["User-Agent"] == USER_AGENT
    assert kwargs["timeout"] == 30.0
    assert kwargs["verify"] is True


def test_request_uses_given_session():
    shared = _mock_session(_mock_response())
    own = _mock_session(_mock_response(204))
    transport = HttpTransport(shared)

    response = transport.request("GET", "http://example.org/", session=own, verify=False)

    assert response.status_code == 204
    shared.request.assert_not_called()
    assert own.request.call_args.kwargs["verify"] is False


def test_timeout_becomes_network_error():
    transport = HttpTransport(_mock_session(error=requests.exceptions.ReadTimeout("slow")))
    with pytest.raises(NetworkError) as exc_info:
        transport.request("POST", "http://example.org/sparql", timeout=5)
    assert exc_info.value.timed_out is True
    assert str(exc_info.value) == "Request timed out after 5s"


def test_connection_failure_becomes_network_error():
    transport = HttpTransport(
        _mock_session(error=requests.exceptions.ConnectionError("refused")),
    )
    with pytest.raises(NetworkError, match="refused") as exc_info:
        transport.request("GET", "http://example.org/")
    assert exc_info.value.timed_out is False


def test_new_session_is_independent():
    transport = HttpTransport()
    assert transport.new_session() is not transport.new_session()


@pytest.mark.parametrize(
    "text, expected",
    [
        ("<!DOCTYPE html><html></html>", True),
        ("  <html><body>login</body></html>", True),
        ('{"head": {}}', False),
        ("", False),
    ],
)
def test_is_html(text, expected):
    assert TransportResponse(200, {}, text).is_html() is expected


def test_response_helpers():
    response = TransportResponse(401, {"content-type": "text/plain", "X-Token": "t"}, "")
    assert response.content_type == "text/plain"
    assert response.header("x-token") == "t"
    assert response.header("missing") is None
    assert response.server_message() == "HTTP 401"
    assert TransportResponse(200).content_type == "unknown"
