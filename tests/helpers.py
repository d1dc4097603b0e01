"""Test helpers: a scripted HTTP transport and SPARQL JSON builders."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Union

from sparqlbridge.models import BackendConfig
from sparqlbridge.transport import HttpTransport, TransportResponse

Reply = Union[TransportResponse, Exception, Callable[..., TransportResponse]]


class FakeTransport(HttpTransport):
    """Replays queued responses and records every request."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[dict[str, Any]] = []
        self._queue: list[tuple[Optional[str], Reply]] = []
        self.sessions_created = 0

    def expect(self, reply: Reply, url: Optional[str] = None) -> "FakeTransport":
        """Queue *reply* for the next request whose URL contains *url*."""
        self._queue.append((url, reply))
        return self

    def new_session(self):
        self.sessions_created += 1
        return super().new_session()

    def request(self, method, url, **kwargs) -> TransportResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        for i, (fragment, reply) in enumerate(self._queue):
            if fragment is None or fragment in url:
                del self._queue[i]
                if isinstance(reply, Exception):
                    raise reply
                if callable(reply):
                    return reply(method, url, **kwargs)
                return reply
        raise AssertionError(f"Unexpected request: {method} {url}")

    @property
    def urls(self) -> list[str]:
        return [c["url"] for c in self.calls]


def json_response(payload: Any, status: int = 200, headers: Optional[dict] = None) -> TransportResponse:
    all_headers = {"Content-Type": "application/sparql-results+json"}
    all_headers.update(headers or {})
    return TransportResponse(status_code=status, headers=all_headers, text=json.dumps(payload))


def text_response(text: str, status: int = 200, content_type: str = "text/plain", headers: Optional[dict] = None) -> TransportResponse:
    all_headers = {"Content-Type": content_type}
    all_headers.update(headers or {})
    return TransportResponse(status_code=status, headers=all_headers, text=text)


def uri(value: str) -> dict[str, str]:
    return {"type": "uri", "value": value}


def literal(value: str) -> dict[str, str]:
    return {"type": "literal", "value": value}


def bindings_response(rows: list[dict[str, Any]], variables: Optional[list[str]] = None) -> TransportResponse:
    """SPARQL JSON results with *rows* as bindings."""
    return json_response({
        "head": {"vars": variables or sorted({k for row in rows for k in row})},
        "results": {"bindings": rows},
    })


def make_backend(
    backend_id: str = "test",
    kind: str = "sparql-1.1",
    endpoint: str = "http://example.org/sparql",
    **extra: Any,
) -> BackendConfig:
    return BackendConfig.model_validate({
        "id": backend_id,
        "name": extra.pop("name", backend_id.title()),
        "type": kind,
        "endpoint": endpoint,
        **extra,
    })
