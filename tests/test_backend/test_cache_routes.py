"""Tests for the ontology cache routes."""

from __future__ import annotations

import pytest

from helpers import bindings_response, json_response, literal, make_backend, uri

EX = "http://example.org/onto#"


def queue_build(transport):
    transport.expect(bindings_response([
        {"iri": uri(EX + "Person"), "label": literal("Person")},
        {"iri": uri(EX + "Personnel"), "label": literal("Personnel")},
    ]))
    transport.expect(bindings_response([
        {"iri": uri(EX + "knows"), "propertyType": literal("object"),
         "domain": uri(EX + "Person"), "range": uri(EX + "Person")},
    ]))
    transport.expect(bindings_response([]))


@pytest.fixture()
def onto(registry):
    return registry.add_backend(make_backend(
        "onto", cache_config={"enabled": True, "maxElements": 1000},
    ))


@pytest.fixture()
def refreshed(client, onto, transport):
    queue_build(transport)
    resp = client.post("/api/cache/onto/refresh")
    assert resp.status_code == 200
    return resp.get_json()


def test_refresh(refreshed):
    stats = refreshed["metadata"]["stats"]
    assert stats["classCount"] == 2
    assert stats["propertyCount"] == 1
    assert stats["totalCount"] == 3
    assert refreshed["metadata"]["backendId"] == "onto"
    assert refreshed["progress"][0] == {
        "status": "loading", "currentType": None, "fetchedCount": 0,
        "totalCount": None, "error": None,
    }
    assert refreshed["progress"][-1]["status"] == "success"


def test_refresh_errors(client, registry, onto, transport):
    registry.add_backend(make_backend("plain"))

    resp = client.post("/api/cache/plain/refresh")
    assert resp.status_code == 400
    assert resp.get_json() == {
        "error": "Cache is not enabled for backend: Plain", "progress": [],
    }

    assert client.post("/api/cache/nope/refresh").status_code == 404

    transport.expect(json_response({"message": "down"}, status=503))
    resp = client.post("/api/cache/onto/refresh")
    assert resp.status_code == 502
    data = resp.get_json()
    assert data["error"] == "Failed to fetch classes: SPARQL query failed (503): down"
    assert data["progress"][-1]["status"] == "error"


def test_refresh_too_many_elements(client, registry, transport):
    registry.add_backend(make_backend(
        "tiny", cache_config={"enabled": True, "maxElements": 1},
    ))
    queue_build(transport)

    resp = client.post("/api/cache/tiny/refresh")

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Too many elements: 2 exceeds limit of 1"
    assert client.get("/api/cache/tiny").status_code == 404


def test_get_and_list_cache(client, refreshed):
    resp = client.get("/api/cache/onto")
    assert resp.status_code == 200
    cache = resp.get_json()
    assert [c["localName"] for c in cache["classes"]] == ["Person", "Personnel"]
    assert cache["properties"][0]["domain"] == [EX + "Person"]
    assert cache["namespaces"] == {"ns1": EX}

    assert client.get("/api/cache/").get_json() == {"backendIds": ["onto"]}
    assert client.get("/api/cache/other").status_code == 404


def test_validation(client, onto, refreshed):
    data = client.get("/api/cache/onto/validation").get_json()
    assert data["exists"] is True
    assert data["valid"] is True
    assert data["expiresAt"] == refreshed["metadata"]["lastUpdated"] + refreshed["metadata"]["ttl"]

    missing = client.get("/api/cache/other/validation").get_json()
    assert missing["exists"] is False


def test_smart_refresh(client, onto, transport):
    queue_build(transport)
    first = client.post("/api/cache/onto/smart-refresh").get_json()
    assert first["refresh"] == "foreground"

    second = client.post("/api/cache/onto/smart-refresh").get_json()
    assert second["refresh"] == "none"
    assert second["cache"]["metadata"]["stats"]["classCount"] == 2
    assert len(transport.calls) == 3


def test_search(client, refreshed):
    resp = client.post("/api/cache/onto/search", json={"query": "person", "types": ["class"]})
    assert resp.status_code == 200
    results = resp.get_json()["results"]
    assert [(r["element"]["iri"], r["score"], r["matchedField"]) for r in results] == [
        (EX + "Person", 1.0, "label"),
        (EX + "Personnel", 0.9, "label"),
    ]

    resp = client.post("/api/cache/onto/search", json={"query": "person", "limit": 1})
    assert len(resp.get_json()["results"]) == 1


def test_search_invalid_options(client, refreshed):
    assert client.post("/api/cache/onto/search", json={}).status_code == 400
    resp = client.post("/api/cache/onto/search", json={"query": "x", "types": ["thing"]})
    assert resp.status_code == 400


def test_get_element(client, refreshed):
    resp = client.get("/api/cache/onto/element", query_string={"iri": EX + "knows"})
    assert resp.status_code == 200
    assert resp.get_json()["propertyType"] == "object"

    resp = client.get(
        "/api/cache/onto/element", query_string={"iri": EX + "knows", "type": "class"},
    )
    assert resp.status_code == 404
    assert client.get("/api/cache/onto/element").status_code == 400
    resp = client.get(
        "/api/cache/onto/element", query_string={"iri": EX + "knows", "type": "thing"},
    )
    assert resp.status_code == 400


def test_test_query(client, onto, transport):
    transport.expect(bindings_response([{"iri": uri("urn:a")}]))
    resp = client.post("/api/cache/onto/test-query", json={"query": "SELECT ?iri WHERE { ?iri a ?c }"})
    assert resp.get_json() == {"valid": True, "error": None, "resultCount": 1}

    assert client.post("/api/cache/onto/test-query", json={}).status_code == 400


def test_delete_cache(client, refreshed):
    assert client.delete("/api/cache/onto").get_json() == {"cleared": "onto"}
    assert client.delete("/api/cache/onto").status_code == 404


def test_clear_all(client, refreshed):
    assert client.delete("/api/cache/").get_json() == {"cleared": True}
    assert client.get("/api/cache/").get_json() == {"backendIds": []}
