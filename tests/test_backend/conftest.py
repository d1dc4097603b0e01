"""Fixtures for backend tests."""

from __future__ import annotations

import pytest

from sparqlbridge.backend.app import create_app
from sparqlbridge.backend.config import TestConfig


@pytest.fixture()
def app(gateway):
    """Create a test Flask application serving the test gateway."""
    application = create_app(TestConfig, gateway=gateway)
    yield application


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()
