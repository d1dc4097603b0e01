"""Settings for the sparqlbridge HTTP API, read from the environment."""

from __future__ import annotations

import os

#: Ontology cache database used when ``DATABASE_PATH`` is unset
DEFAULT_DATABASE_PATH = "sparqlbridge.db"


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Config:
    """Gateway settings for ``create_app``."""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-key-change-in-prod")
    DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"

    # Browser origins allowed on /api/*
    CORS_ORIGINS = _split_origins(os.getenv("CORS_ORIGINS", "http://localhost:*"))

    # Backends and credentials registered at startup; empty starts with none
    BACKENDS_FILE = os.getenv("BACKENDS_FILE", "")

    DATABASE_PATH = os.getenv("DATABASE_PATH", DEFAULT_DATABASE_PATH)


class TestConfig(Config):
    TESTING = True
    DATABASE_PATH = ":memory:"
    BACKENDS_FILE = ""
