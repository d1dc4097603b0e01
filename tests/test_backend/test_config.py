"""Tests for the HTTP API settings."""

from __future__ import annotations

import textwrap

from sparqlbridge.backend.app import create_app
from sparqlbridge.backend.config import TestConfig, _split_origins


def test_split_origins():
    assert _split_origins("http://a.org, http://b.org,,") == ["http://a.org", "http://b.org"]
    assert _split_origins("") == []


def test_app_loads_backends_file(tmp_path):
    path = tmp_path / "backends.yaml"
    path.write_text(textwrap.dedent("""\
        backends:
          - id: dbpedia
            name: DBpedia
            type: sparql-1.1
            endpoint: https://dbpedia.org/sparql
    """))

    class FileConfig(TestConfig):
        BACKENDS_FILE = str(path)

    app = create_app(FileConfig)
    resp = app.test_client().get("/api/health")

    assert resp.get_json() == {"status": "ok", "backends": 1}
    assert app.config["GATEWAY"].registry.list_backends()[0].id == "dbpedia"
