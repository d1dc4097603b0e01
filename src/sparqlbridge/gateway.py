"""
Query gateway: the public operation surface of sparqlbridge.

Composes the backend registry, credential store, provider factory, cache
builder and cache store.  One gateway owns one session broker (GraphDB
tokens, Mobi cookie sessions) and one small thread pool for background
cache refreshes.

Example:
    >>> registry, credentials = load_backends_file("backends.yaml")
    >>> gateway = QueryGateway(registry, credentials, OntologyCacheStore(Database()))
    >>> result = gateway.execute_query("ASK { ?s ?p ?o }", "local-graphdb")
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from .cache_builder import OntologyCacheBuilder, ProgressCallback
from .cache_store import OntologyCacheStore
from .errors import BackendNotFoundError, GatewayError
from .factory import BackendFactory
from .models import (
    BackendConfig,
    CacheValidation,
    ElementType,
    OntologyCache,
    OntologyElement,
    QueryResult,
    QueryTestResult,
    SearchOptions,
    SearchResult,
    SmartRefreshResult,
    ValidationResult,
)
from .registry import BackendRegistry, CredentialStore

logger = logging.getLogger(__name__)


class QueryGateway:
    """Execute queries and manage ontology caches for registered backends."""

    def __init__(
        self,
        registry: BackendRegistry,
        credentials: CredentialStore,
        store: OntologyCacheStore,
        factory: BackendFactory | None = None,
        max_background_refreshes: int = 2,
    ) -> None:
        self.registry = registry
        self.credentials = credentials
        self.store = store
        self.factory = factory or BackendFactory()
        self.builder = OntologyCacheBuilder(registry, credentials, self.factory)

        self._executor = ThreadPoolExecutor(
            max_workers=max_background_refreshes,
            thread_name_prefix="cache-refresh",
        )
        self._inflight: dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    # ── Queries ──────────────────────────────────────────────────

    def _backend(self, backend_id: str) -> BackendConfig:
        backend = self.registry.get_backend(backend_id)
        if backend is None:
            raise BackendNotFoundError(backend_id)
        return backend

    def execute_query(self, query: str, backend_id: str) -> QueryResult:
        """Forward *query* to the backend registered as *backend_id*."""
        backend = self._backend(backend_id)
        provider = self.factory.get_provider(backend.kind)
        return provider.execute(
            backend, query, self.credentials.get_credentials(backend_id),
        )

    def validate_backend(self, backend_id: str) -> ValidationResult:
        """Test connectivity. Never raises; unknown ids are invalid."""
        backend = self.registry.get_backend(backend_id)
        if backend is None:
            return ValidationResult(valid=False, error=f"Backend not found: {backend_id}")
        try:
            provider = self.factory.get_provider(backend.kind)
        except GatewayError as exc:
            return ValidationResult(valid=False, error=str(exc))
        return provider.validate(backend, self.credentials.get_credentials(backend_id))

    # ── Cache building ───────────────────────────────────────────

    def fetch_ontology_cache(
        self,
        backend_id: str,
        report_progress: ProgressCallback | None = None,
    ) -> OntologyCache:
        """Build a cache without storing it."""
        return self.builder.fetch_cache(backend_id, report_progress)

    def refresh_cache(
        self,
        backend_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> OntologyCache:
        """Build and store a cache; on failure the stored cache is left alone."""
        cache = self.builder.fetch_cache(backend_id, on_progress)
        self.store.store(backend_id, cache)
        return cache

    def read_cache(self, backend_id: str) -> Optional[OntologyCache]:
        """Stored cache of *backend_id*. Never touches the network."""
        return self.store.get(backend_id)

    def _run_background_refresh(self, backend_id: str) -> None:
        try:
            self.refresh_cache(backend_id)
            logger.info("Background refresh of %s finished", backend_id)
        except GatewayError as exc:
            logger.warning("Background refresh of %s failed: %s", backend_id, exc)
        finally:
            with self._inflight_lock:
                self._inflight.pop(backend_id, None)

    def schedule_refresh(self, backend_id: str) -> bool:
        """Start a background refresh unless one is already running.

        Returns True when a new refresh was scheduled.
        """
        with self._inflight_lock:
            if backend_id in self._inflight:
                logger.debug("Refresh of %s already in flight", backend_id)
                return False
            self._inflight[backend_id] = self._executor.submit(
                self._run_background_refresh, backend_id,
            )
        return True

    def is_refreshing(self, backend_id: str) -> bool:
        with self._inflight_lock:
            return backend_id in self._inflight

    def smart_refresh(self, backend_id: str) -> SmartRefreshResult:
        """Return a usable cache with as little waiting as possible.

        A valid cache is returned as is.  A stale cache is returned
        immediately while a background refresh replaces it.  Without any
        cache the refresh runs in the foreground.
        """
        validation = self.store.validate(backend_id)
        if validation.exists:
            cache = self.store.get(backend_id)
            if cache is not None:
                if validation.valid:
                    return SmartRefreshResult(cache=cache, validation=validation)
                logger.info("Cache for %s is stale, refreshing in background", backend_id)
                self.schedule_refresh(backend_id)
                return SmartRefreshResult(
                    cache=cache, validation=validation, refresh="background",
                )

        cache = self.refresh_cache(backend_id)
        return SmartRefreshResult(
            cache=cache,
            validation=self.store.validate(backend_id),
            refresh="foreground",
        )

    def refresh_stale_caches(self, wait: bool = False) -> list[str]:
        """Refresh every stale cache of a cache-enabled backend.

        With ``wait=False`` the refreshes are scheduled in the background;
        otherwise they run one after another and failures are logged.
        Returns the ids of the backends that were (scheduled to be)
        refreshed.
        """
        refreshed: list[str] = []
        for backend in self.registry.list_backends():
            if not (backend.cache_config and backend.cache_config.enabled):
                continue
            if not self.store.validate(backend.id).stale:
                continue
            if wait:
                try:
                    self.refresh_cache(backend.id)
                except GatewayError as exc:
                    logger.warning("Refresh of %s failed: %s", backend.id, exc)
                    continue
                refreshed.append(backend.id)
            elif self.schedule_refresh(backend.id):
                refreshed.append(backend.id)
        return refreshed

    def test_cache_query(self, backend_id: str, query: str) -> QueryTestResult:
        return self.builder.test_query(backend_id, query)

    # ── Cache reads ──────────────────────────────────────────────

    def search_cached_elements(
        self, backend_id: str, options: SearchOptions,
    ) -> list[SearchResult]:
        return self.store.search(backend_id, options)

    def validate_cache_freshness(self, backend_id: str) -> CacheValidation:
        return self.store.validate(backend_id)

    def get_cached_element(
        self,
        backend_id: str,
        iri: str,
        element_type: ElementType | None = None,
    ) -> Optional[OntologyElement]:
        return self.store.get_by_iri(backend_id, iri, element_type)

    def invalidate_cache(self, backend_id: str) -> bool:
        return self.store.clear(backend_id)

    def clear_all_caches(self) -> None:
        self.store.clear_all()

    def list_cached_backend_ids(self) -> list[str]:
        return self.store.list_cached_backend_ids()

    # ── Lifecycle ────────────────────────────────────────────────

    def close(self, wait: bool = True) -> None:
        """Stop the refresh pool and forget every login."""
        self._executor.shutdown(wait=wait)
        self.factory.broker.clear()
