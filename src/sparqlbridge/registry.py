"""Backend registry and credential store.

The gateway only needs the two small protocols below; the in-memory
implementations back the Flask app, the CLI and the tests.  Backends can
be loaded from a YAML file::

    backends:
      - id: local-graphdb
        name: Local GraphDB
        type: graphdb
        endpoint: http://localhost:7200
        authType: basic
        providerConfig:
          repositoryId: ontologies
        cacheConfig:
          enabled: true
        credentials:
          username: admin
          password: ${GRAPHDB_PASSWORD}

``${VAR}`` references in string values are expanded from the environment.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError
from .models import BackendConfig, Credentials
from .provider_config import parse_provider_config

logger = logging.getLogger(__name__)


class BackendRegistry(Protocol):
    def get_backend(self, backend_id: str) -> Optional[BackendConfig]: ...

    def list_backends(self) -> list[BackendConfig]: ...


class CredentialStore(Protocol):
    def get_credentials(self, backend_id: str) -> Optional[Credentials]: ...


class InMemoryBackendRegistry:
    """Backend configurations keyed by id, in insertion order."""

    def __init__(self, backends: list[BackendConfig] | None = None) -> None:
        self._backends: dict[str, BackendConfig] = {}
        for backend in backends or []:
            self.add_backend(backend)

    def add_backend(self, backend: BackendConfig) -> BackendConfig:
        """Register *backend*, replacing any backend with the same id.

        Raises:
            ConfigurationError: If the provider configuration is malformed.
        """
        parse_provider_config(backend.kind, backend.provider_config)
        now = int(time.time() * 1000)
        backend = backend.model_copy(update={
            "created_at": backend.created_at or now,
            "updated_at": now,
        })
        self._backends[backend.id] = backend
        return backend

    def remove_backend(self, backend_id: str) -> bool:
        return self._backends.pop(backend_id, None) is not None

    def get_backend(self, backend_id: str) -> Optional[BackendConfig]:
        return self._backends.get(backend_id)

    def list_backends(self) -> list[BackendConfig]:
        return list(self._backends.values())

    def __len__(self) -> int:
        return len(self._backends)


class InMemoryCredentialStore:
    """Credentials keyed by backend id. Nothing is written to disk."""

    def __init__(self) -> None:
        self._credentials: dict[str, Credentials] = {}

    def get_credentials(self, backend_id: str) -> Optional[Credentials]:
        return self._credentials.get(backend_id)

    def set_credentials(self, backend_id: str, credentials: Credentials) -> None:
        self._credentials[backend_id] = credentials

    def delete_credentials(self, backend_id: str) -> None:
        self._credentials.pop(backend_id, None)


# ── YAML loading ──────────────────────────────────────────────────


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def load_backends_file(
    path: str | Path,
    registry: InMemoryBackendRegistry | None = None,
    credentials: InMemoryCredentialStore | None = None,
) -> tuple[InMemoryBackendRegistry, InMemoryCredentialStore]:
    """Load backends (and optional credentials) from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, or
            describes an invalid backend.
    """
    registry = registry if registry is not None else InMemoryBackendRegistry()
    credentials = credentials if credentials is not None else InMemoryCredentialStore()

    path = Path(path)
    try:
        with open(path, "r") as f:
            document = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read backends file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    entries = document.get("backends", []) if isinstance(document, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path}: 'backends' must be a list")

    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{path}: each backend must be a mapping")
        entry = _expand_env(entry)
        secret = entry.pop("credentials", None)
        try:
            backend = BackendConfig.model_validate(entry)
            creds = Credentials.model_validate(secret) if secret else None
        except ValidationError as exc:
            raise ConfigurationError(
                f"{path}: invalid backend {entry.get('id', '?')!r}: {exc}"
            ) from exc
        registry.add_backend(backend)
        if creds is not None:
            credentials.set_credentials(backend.id, creds)

    logger.info("Loaded %d backends from %s", len(entries), path)
    return registry, credentials
