"""Ontology cache builder: discover classes, properties and individuals.

Runs the backend's discovery queries through its provider in three phases
and turns the SPARQL JSON rows into an :class:`OntologyCache`.  Nothing is
persisted here; see :mod:`sparqlbridge.cache_store`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from .errors import (
    BackendNotFoundError,
    CacheDisabledError,
    CacheFetchError,
    GatewayError,
    ParseError,
    TooManyElementsError,
)
from .factory import BackendFactory
from .models import (
    CACHE_SCHEMA_VERSION,
    DEFAULT_CACHE_CONFIG,
    BackendConfig,
    CacheLoadStatus,
    CacheMetadata,
    CacheProgress,
    CacheStats,
    Credentials,
    ElementType,
    OntologyCache,
    OntologyClass,
    OntologyIndividual,
    OntologyProperty,
    QueryTestResult,
)
from .providers import BaseProvider
from .registry import BackendRegistry, CredentialStore
from .utils import (
    add_unique,
    binding_value,
    build_namespace_table,
    parse_iri,
    result_bindings,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[CacheProgress], None]

_PROPERTY_TYPES = ("object", "datatype", "annotation")


# ── Row conversion ────────────────────────────────────────────────


def _check_rows(rows: Optional[list[dict[str, Any]]], phase: str) -> list[dict[str, Any]]:
    if rows is None:
        raise ParseError(
            f"Unexpected response for {phase} query: expected SPARQL JSON results"
        )
    if rows and not any(binding_value(row, "iri") for row in rows):
        raise ParseError(
            f"No usable ?iri binding in {len(rows)} {phase} result rows"
        )
    return rows


def classes_from_rows(rows: list[dict[str, Any]]) -> list[OntologyClass]:
    """One class per distinct IRI; the first row wins for labels."""
    found: dict[str, OntologyClass] = {}
    for row in rows:
        iri = binding_value(row, "iri")
        if not iri or iri in found:
            continue
        namespace, local_name = parse_iri(iri)
        found[iri] = OntologyClass(
            iri=iri,
            label=binding_value(row, "label"),
            description=binding_value(row, "description"),
            namespace=namespace,
            local_name=local_name,
        )
    return list(found.values())


def properties_from_rows(rows: list[dict[str, Any]]) -> list[OntologyProperty]:
    """One property per distinct IRI with domain and range collected from all rows."""
    found: dict[str, OntologyProperty] = {}
    for row in rows:
        iri = binding_value(row, "iri")
        if not iri:
            continue
        prop = found.get(iri)
        if prop is None:
            property_type = binding_value(row, "propertyType")
            if property_type not in _PROPERTY_TYPES:
                property_type = "object"
            namespace, local_name = parse_iri(iri)
            prop = OntologyProperty(
                iri=iri,
                label=binding_value(row, "label"),
                description=binding_value(row, "description"),
                namespace=namespace,
                local_name=local_name,
                property_type=property_type,
            )
            found[iri] = prop
        add_unique(prop.domain, binding_value(row, "domain"))
        add_unique(prop.range, binding_value(row, "range"))
    return list(found.values())


def individuals_from_rows(rows: list[dict[str, Any]]) -> list[OntologyIndividual]:
    found: dict[str, OntologyIndividual] = {}
    for row in rows:
        iri = binding_value(row, "iri")
        if not iri:
            continue
        individual = found.get(iri)
        if individual is None:
            namespace, local_name = parse_iri(iri)
            individual = OntologyIndividual(
                iri=iri,
                label=binding_value(row, "label"),
                description=binding_value(row, "description"),
                namespace=namespace,
                local_name=local_name,
            )
            found[iri] = individual
        add_unique(individual.classes, binding_value(row, "class"))
    return list(found.values())


# ── Builder ───────────────────────────────────────────────────────


class OntologyCacheBuilder:
    """Fetch a complete ontology cache for one backend."""

    def __init__(
        self,
        registry: BackendRegistry,
        credentials: CredentialStore,
        factory: BackendFactory | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.credentials = credentials
        self.factory = factory or BackendFactory()
        self._clock = clock

    def _resolve(self, backend_id: str) -> BackendConfig:
        backend = self.registry.get_backend(backend_id)
        if backend is None:
            raise BackendNotFoundError(backend_id)
        return backend

    def _run_phase(
        self,
        provider: BaseProvider,
        backend: BackendConfig,
        credentials: Credentials | None,
        phase: str,
        query: str,
    ) -> list[dict[str, Any]]:
        try:
            result = provider.execute(backend, query, credentials)
        except GatewayError as exc:
            logger.error("Failed to fetch %s for %s: %s", phase, backend.id, exc)
            raise CacheFetchError(phase, exc) from exc
        return _check_rows(result_bindings(result.data), phase)

    def fetch_cache(
        self,
        backend_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> OntologyCache:
        """Run the three discovery phases and assemble the cache.

        Raises:
            BackendNotFoundError: Unknown backend id.
            CacheDisabledError: Caching is switched off for the backend.
            CacheFetchError: A discovery query failed.
            ParseError: A discovery response was not usable.
            TooManyElementsError: More elements than ``max_elements``.
        """
        backend = self._resolve(backend_id)
        cache_config = backend.cache_config or DEFAULT_CACHE_CONFIG
        if not cache_config.enabled:
            raise CacheDisabledError(
                f"Cache is not enabled for backend: {backend.name}"
            )

        credentials = self.credentials.get_credentials(backend_id)
        provider = self.factory.get_provider(backend.kind)
        queries = cache_config.queries
        fetched = 0

        def emit(
            status: CacheLoadStatus,
            current_type: ElementType | None = None,
            error: str | None = None,
        ) -> None:
            if on_progress is not None:
                on_progress(CacheProgress(
                    status=status,
                    current_type=current_type,
                    fetched_count=fetched,
                    error=error,
                ))

        def check_limit() -> None:
            if fetched > cache_config.max_elements:
                raise TooManyElementsError(fetched, cache_config.max_elements)

        logger.info("Fetching ontology cache for %s (%s)", backend.name, backend.kind.value)
        try:
            emit("loading")

            emit("loading", "class")
            classes = classes_from_rows(self._run_phase(
                provider, backend, credentials, "classes", queries.classes,
            ))
            fetched += len(classes)
            emit("loading", "class")
            check_limit()

            emit("loading", "property")
            properties = properties_from_rows(self._run_phase(
                provider, backend, credentials, "properties", queries.properties,
            ))
            fetched += len(properties)
            emit("loading", "property")
            check_limit()

            emit("loading", "individual")
            individuals = individuals_from_rows(self._run_phase(
                provider, backend, credentials, "individuals", queries.individuals,
            ))
            fetched += len(individuals)
            emit("loading", "individual")
            check_limit()
        except GatewayError as exc:
            emit("error", error=str(exc))
            raise

        namespaces = build_namespace_table(
            element.namespace for element in [*classes, *properties, *individuals]
        )
        cache = OntologyCache(
            metadata=CacheMetadata(
                backend_id=backend_id,
                last_updated=int(self._clock() * 1000),
                ttl=cache_config.ttl,
                version=CACHE_SCHEMA_VERSION,
                stats=CacheStats(
                    class_count=len(classes),
                    property_count=len(properties),
                    individual_count=len(individuals),
                    total_count=fetched,
                    namespace_count=len(namespaces),
                ),
            ),
            classes=classes,
            properties=properties,
            individuals=individuals,
            namespaces=namespaces,
        )
        cache.metadata.stats.size_bytes = len(
            cache.model_dump_json(by_alias=True).encode("utf-8")
        )

        logger.info(
            "Fetched %d classes, %d properties, %d individuals for %s",
            len(classes), len(properties), len(individuals), backend.name,
        )
        emit("success")
        return cache

    def test_query(self, backend_id: str, query: str) -> QueryTestResult:
        """Run an edited discovery query and count its rows. Never raises."""
        try:
            backend = self._resolve(backend_id)
            credentials = self.credentials.get_credentials(backend_id)
            provider = self.factory.get_provider(backend.kind)
            result = provider.execute(backend, query, credentials)
        except GatewayError as exc:
            return QueryTestResult(valid=False, error=str(exc))
        rows = result_bindings(result.data) or []
        return QueryTestResult(valid=True, result_count=len(rows))
