"""Shared fixtures: a scripted HTTP transport and in-memory collaborators."""

from __future__ import annotations

import pytest

from helpers import FakeTransport
from sparqlbridge.cache_store import OntologyCacheStore
from sparqlbridge.database import Database
from sparqlbridge.factory import BackendFactory
from sparqlbridge.gateway import QueryGateway
from sparqlbridge.registry import InMemoryBackendRegistry, InMemoryCredentialStore
from sparqlbridge.sessions import SessionBroker


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def broker():
    return SessionBroker()


@pytest.fixture()
def factory(transport, broker):
    return BackendFactory(transport, broker)


@pytest.fixture()
def registry():
    return InMemoryBackendRegistry()


@pytest.fixture()
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture()
def store():
    return OntologyCacheStore(Database(":memory:"))


@pytest.fixture()
def gateway(registry, credentials, store, factory):
    gw = QueryGateway(registry, credentials, store, factory)
    yield gw
    gw.close()
