"""
HTTP transport for SPARQL protocol requests.

A thin layer over :mod:`requests` that:

- sends one request with explicit timeout and TLS verification toggle
- returns status, headers and body without raising on HTTP error statuses
- turns connection failures and timeouts into :class:`NetworkError`
- optionally reuses a caller-owned :class:`requests.Session`, so cookie
  based logins survive between requests

Usage:
    from sparqlbridge.transport import HttpTransport

    transport = HttpTransport()
    response = transport.request(
        "POST",
        "https://sparql.example.org/",
        headers={"Content-Type": "application/sparql-query"},
        data="ASK { ?s ?p ?o }",
    )
    if response.ok:
        print(response.json())
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from .errors import NetworkError

logger = logging.getLogger(__name__)

USER_AGENT = "sparqlbridge/1.0 (SPARQL client)"

# HTML markers that indicate an error page instead of query results
HTML_MARKERS = ("<!DOCTYPE", "<html", "<HTML", "<!doctype")


@dataclass
class TransportResponse:
    """Status, headers and body of one HTTP exchange."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return "unknown"

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None

    def json(self) -> Any:
        return json.loads(self.text)

    def is_html(self) -> bool:
        """Check if the body looks like an HTML page."""
        stripped = self.text.strip()
        return any(stripped.startswith(marker) for marker in HTML_MARKERS)

    def server_message(self) -> str:
        """Best-effort error message from the response body."""
        try:
            payload = self.json()
        except ValueError:
            return self.text.strip()[:500] or f"HTTP {self.status_code}"
        if isinstance(payload, dict):
            for key in ("message", "error", "errorMessage"):
                if payload.get(key):
                    return str(payload[key])
        return self.text.strip()[:500]


class HttpTransport:
    """Send HTTP requests on behalf of providers."""

    def __init__(self, session: requests.Session | None = None) -> None:
        # Shared session for connection pooling on stateless requests
        self._session = session or requests.Session()

    def new_session(self) -> requests.Session:
        """Return a fresh session with its own cookie jar."""
        return requests.Session()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        json: Any = None,
        timeout: float = 30.0,
        verify: bool = True,
        session: requests.Session | None = None,
    ) -> TransportResponse:
        """Send one request and return the response, whatever its status.

        Raises:
            NetworkError: If no response was received (connection refused,
                DNS failure, TLS failure, timeout).
        """
        all_headers = {"User-Agent": USER_AGENT}
        all_headers.update(headers or {})

        client = session or self._session
        try:
            response = client.request(
                method,
                url,
                headers=all_headers,
                params=params,
                data=data,
                json=json,
                timeout=timeout,
                verify=verify,
            )
        except requests.exceptions.Timeout as exc:
            logger.warning("%s %s timed out after %ss", method, url, timeout)
            raise NetworkError(
                f"Request timed out after {timeout}s", timed_out=True,
            ) from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkError(str(exc)) from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            text=response.text,
        )
