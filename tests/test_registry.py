"""Tests for the backend registry, credential store and YAML loading."""

from __future__ import annotations

import textwrap

import pytest

from helpers import make_backend
from sparqlbridge.errors import ConfigurationError
from sparqlbridge.models import AuthType, BackendKind, Credentials
from sparqlbridge.provider_config import GraphDBConfig, MobiConfig, parse_provider_config
from sparqlbridge.registry import (
    InMemoryBackendRegistry,
    InMemoryCredentialStore,
    load_backends_file,
)

BACKENDS_YAML = textwrap.dedent("""\
    backends:
      - id: local-graphdb
        name: Local GraphDB
        type: graphdb
        endpoint: http://localhost:7200
        authType: basic
        providerConfig:
          repositoryId: ontologies
          timeout: 20
        cacheConfig:
          enabled: true
          ttl: 600000
        credentials:
          username: admin
          password: ${GRAPHDB_PASSWORD}
      - id: dbpedia
        name: DBpedia
        type: sparql-1.1
        endpoint: https://dbpedia.org/sparql
""")


def write(tmp_path, text: str):
    path = tmp_path / "backends.yaml"
    path.write_text(text)
    return path


def test_registry_crud():
    registry = InMemoryBackendRegistry()
    assert registry.list_backends() == []

    added = registry.add_backend(make_backend("a"))
    assert added.created_at is not None
    assert added.updated_at >= added.created_at
    registry.add_backend(make_backend("b"))

    assert [b.id for b in registry.list_backends()] == ["a", "b"]
    assert registry.get_backend("a").name == "A"
    assert len(registry) == 2

    assert registry.remove_backend("a") is True
    assert registry.remove_backend("a") is False
    assert registry.get_backend("a") is None


def test_replacing_a_backend_keeps_created_at():
    registry = InMemoryBackendRegistry()
    first = registry.add_backend(make_backend("a"))
    second = registry.add_backend(first.model_copy(update={"name": "Renamed"}))
    assert second.created_at == first.created_at
    assert registry.get_backend("a").name == "Renamed"


def test_registry_rejects_malformed_provider_config():
    registry = InMemoryBackendRegistry()
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        registry.add_backend(make_backend(
            "g", kind="graphdb", provider_config="{not json",
        ))
    with pytest.raises(ConfigurationError, match="Invalid graphdb configuration"):
        registry.add_backend(make_backend(
            "g", kind="graphdb", provider_config={"timeout": -1},
        ))
    assert len(registry) == 0


def test_parse_provider_config():
    parsed = parse_provider_config(
        BackendKind.GRAPHDB, '{"repositoryId": "repo", "inferenceEnabled": true}',
    )
    assert isinstance(parsed, GraphDBConfig)
    assert parsed.repository_id == "repo"
    assert parsed.inference_enabled is True

    mobi = parse_provider_config(BackendKind.MOBI, {"recordId": "urn:r"})
    assert isinstance(mobi, MobiConfig)
    assert mobi.query_mode == "record"

    assert parse_provider_config(BackendKind.SPARQL11, {"anything": 1}) is None
    assert parse_provider_config(BackendKind.GRAPHDB, "") is None
    assert parse_provider_config(BackendKind.GRAPHDB, "null") is None
    with pytest.raises(ConfigurationError, match="JSON object"):
        parse_provider_config(BackendKind.GRAPHDB, "[1, 2]")


def test_credential_store():
    store = InMemoryCredentialStore()
    assert store.get_credentials("a") is None
    store.set_credentials("a", Credentials(token="t"))
    assert store.get_credentials("a").token == "t"
    store.delete_credentials("a")
    assert store.get_credentials("a") is None


def test_credentials_are_not_in_repr():
    assert "s3cret" not in repr(Credentials(username="u", password="s3cret"))


def test_load_backends_file(tmp_path, monkeypatch):
    monkeypatch.setenv("GRAPHDB_PASSWORD", "s3cret")
    registry, credentials = load_backends_file(write(tmp_path, BACKENDS_YAML))

    graphdb = registry.get_backend("local-graphdb")
    assert graphdb.kind == BackendKind.GRAPHDB
    assert graphdb.auth_type == AuthType.BASIC
    assert graphdb.provider_config == {"repositoryId": "ontologies", "timeout": 20}
    assert graphdb.cache_config.enabled is True
    assert graphdb.cache_config.ttl == 600000

    creds = credentials.get_credentials("local-graphdb")
    assert (creds.username, creds.password) == ("admin", "s3cret")

    dbpedia = registry.get_backend("dbpedia")
    assert dbpedia.auth_type == AuthType.NONE
    assert dbpedia.cache_config is None
    assert credentials.get_credentials("dbpedia") is None


def test_load_backends_file_into_existing_registry(tmp_path):
    registry = InMemoryBackendRegistry([make_backend("existing")])
    load_backends_file(write(tmp_path, BACKENDS_YAML), registry)
    assert [b.id for b in registry.list_backends()] == ["existing", "local-graphdb", "dbpedia"]


@pytest.mark.parametrize(
    "text, message",
    [
        ("backends: {id: x}\n", "must be a list"),
        ("backends:\n  - just-a-string\n", "must be a mapping"),
        ("backends:\n  - id: x\n    type: nope\n    name: X\n    endpoint: http://x\n", "invalid backend 'x'"),
        ("backends: [unclosed\n", "Invalid YAML"),
    ],
)
def test_load_backends_file_errors(tmp_path, text, message):
    with pytest.raises(ConfigurationError, match=message):
        load_backends_file(write(tmp_path, text))


def test_load_backends_file_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="Cannot read backends file"):
        load_backends_file(tmp_path / "missing.yaml")


def test_empty_backends_file(tmp_path):
    registry, _ = load_backends_file(write(tmp_path, ""))
    assert len(registry) == 0
