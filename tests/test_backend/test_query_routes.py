"""Tests for the query, backend and health routes."""

from __future__ import annotations

from helpers import bindings_response, json_response, make_backend, text_response, uri
from sparqlbridge.errors import NetworkError
from sparqlbridge.models import Credentials


def test_health(client, registry):
    registry.add_backend(make_backend("ep"))
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "backends": 1}


def test_query_missing_fields(client):
    resp = client.post("/api/query", json={})
    assert resp.status_code == 400
    resp = client.post("/api/query", json={"query": "ASK {}"})
    assert resp.status_code == 400


def test_query_success(client, registry, transport):
    registry.add_backend(make_backend("ep"))
    transport.expect(bindings_response([{"s": uri("http://example.org/1")}]))

    resp = client.post(
        "/api/query",
        json={"query": "SELECT ?s WHERE { ?s a ?t } LIMIT 1", "backendId": "ep"},
    )

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["queryType"] == "SELECT"
    assert data["contentType"] == "application/sparql-results+json"
    assert data["data"]["results"]["bindings"][0]["s"]["value"] == "http://example.org/1"


def test_construct_returns_text(client, registry, transport):
    registry.add_backend(make_backend("ep"))
    transport.expect(text_response("<urn:a> <urn:b> <urn:c> .", content_type="text/turtle"))

    resp = client.post(
        "/api/query",
        json={"query": "CONSTRUCT { ?s ?p ?o } WHERE { ?s ?p ?o }", "backend_id": "ep"},
    )

    assert resp.status_code == 200
    assert resp.get_json()["data"] == "<urn:a> <urn:b> <urn:c> ."


def test_query_unknown_backend(client):
    resp = client.post("/api/query", json={"query": "ASK {}", "backend_id": "nope"})
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Backend not found: nope"}


def test_query_error_statuses(client, registry, credentials, transport):
    registry.add_backend(make_backend("ep"))
    registry.add_backend(make_backend("secured", auth_type="bearer"))

    transport.expect(json_response({"message": "Internal"}, status=500))
    resp = client.post("/api/query", json={"query": "ASK {}", "backend_id": "ep"})
    assert resp.status_code == 502
    assert "SPARQL query failed (500)" in resp.get_json()["error"]

    transport.expect(NetworkError("Request timed out after 30.0s", timed_out=True))
    resp = client.post("/api/query", json={"query": "ASK {}", "backend_id": "ep"})
    assert resp.status_code == 504

    resp = client.post("/api/query", json={"query": "ASK {}", "backend_id": "secured"})
    assert resp.status_code == 401

    credentials.set_credentials("secured", Credentials(token="t"))
    transport.expect(json_response({"message": "Forbidden"}, status=403))
    resp = client.post("/api/query", json={"query": "ASK {}", "backend_id": "secured"})
    assert resp.status_code == 401

    resp = client.post(
        "/api/query", json={"query": "#" * 100_001, "backend_id": "ep"},
    )
    assert resp.status_code == 400
    assert "Query too large" in resp.get_json()["error"]


def test_list_backends_hides_credentials(client, registry, credentials):
    registry.add_backend(make_backend("ep", auth_type="basic"))
    credentials.set_credentials("ep", Credentials(username="u", password="s3cret"))

    resp = client.get("/api/backends/")

    assert resp.status_code == 200
    (backend,) = resp.get_json()["backends"]
    assert backend["id"] == "ep"
    assert backend["type"] == "sparql-1.1"
    assert backend["authType"] == "basic"
    assert "s3cret" not in resp.get_data(as_text=True)


def test_validate_backend(client, registry, transport):
    registry.add_backend(make_backend("ep"))
    transport.expect(json_response({"boolean": True}))

    assert client.post("/api/backends/ep/validate").get_json() == {"valid": True, "error": None}

    resp = client.post("/api/backends/nope/validate")
    assert resp.status_code == 200
    assert resp.get_json()["valid"] is False


def test_unknown_route(client):
    resp = client.get("/api/nothing")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Resource not found"}


def test_method_not_allowed(client):
    resp = client.get("/api/query")
    assert resp.status_code == 405
