"""Persistent ontology cache store with freshness checks and search."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from pydantic import TypeAdapter

from .database import ELEMENT_TABLES, Database
from .models import (
    AnyOntologyElement,
    CacheMetadata,
    CacheStats,
    CacheValidation,
    ElementType,
    OntologyCache,
    OntologyClass,
    OntologyElement,
    OntologyIndividual,
    OntologyProperty,
    SearchOptions,
    SearchResult,
)

logger = logging.getLogger(__name__)

_ELEMENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(AnyOntologyElement)

#: Lookup order for :meth:`OntologyCacheStore.get_by_iri`
LOOKUP_ORDER: tuple[ElementType, ...] = ("class", "property", "individual")


# ── Scoring ───────────────────────────────────────────────────────


def score_element(
    element: OntologyElement,
    needle: str,
    fold: Callable[[str], str],
) -> tuple[float, str]:
    """Relevance of *element* for an already folded *needle*.

    Returns ``(score, matched_field)``; exact label beats label prefix,
    which beats local-name prefix, label substring, IRI substring and
    description substring in that order.
    """
    label = fold(element.label) if element.label else None
    local_name = fold(element.local_name) if element.local_name else None
    description = fold(element.description) if element.description else None

    if label is not None and label == needle:
        return 1.0, "label"
    if label is not None and label.startswith(needle):
        return 0.9, "label"
    if local_name is not None and local_name.startswith(needle):
        return 0.7, "localName"
    if label is not None and needle in label:
        return 0.6, "label"
    if needle in fold(element.iri):
        return 0.5, "iri"
    if description is not None and needle in description:
        return 0.3, "description"
    return 0.0, "iri"


def _matches(value: Optional[str], needle: str, fold: Callable[[str], str], prefix_only: bool) -> bool:
    if not value:
        return False
    value = fold(value)
    return value.startswith(needle) if prefix_only else needle in value


class OntologyCacheStore:
    """Store, read, validate and search ontology caches.

    Every backend's cache is written atomically: readers see either the
    previous cache or the new one, never a mix.
    """

    def __init__(
        self,
        db: Database,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # -- writes ---------------------------------------------------------

    def store(self, backend_id: str, cache: OntologyCache) -> None:
        """Replace the cache of *backend_id* with *cache*."""
        elements = {
            "class": [(e.iri, e.model_dump(by_alias=True)) for e in cache.classes],
            "property": [(e.iri, e.model_dump(by_alias=True)) for e in cache.properties],
            "individual": [(e.iri, e.model_dump(by_alias=True)) for e in cache.individuals],
        }
        metadata = cache.metadata.model_dump(by_alias=True)
        metadata["backendId"] = backend_id
        self.db.replace_cache(backend_id, metadata, elements, cache.namespaces)
        logger.info(
            "Stored ontology cache for %s (%d elements)",
            backend_id, cache.metadata.stats.total_count,
        )

    def clear(self, backend_id: str) -> bool:
        return self.db.delete_cache(backend_id)

    def clear_all(self) -> None:
        self.db.delete_all_caches()
        logger.info("Cleared all ontology caches")

    # -- reads ----------------------------------------------------------

    def get_metadata(self, backend_id: str) -> CacheMetadata | None:
        row = self.db.get_cache_metadata(backend_id)
        if row is None:
            return None
        return CacheMetadata.model_validate(row)

    def get_stats(self, backend_id: str) -> CacheStats | None:
        metadata = self.get_metadata(backend_id)
        return metadata.stats if metadata else None

    def get(self, backend_id: str) -> OntologyCache | None:
        """Return the full cache of *backend_id*, or None when absent."""
        metadata = self.get_metadata(backend_id)
        if metadata is None:
            return None
        return OntologyCache(
            metadata=metadata,
            classes=[
                OntologyClass.model_validate(r)
                for r in self.db.get_cache_elements(backend_id, "class")
            ],
            properties=[
                OntologyProperty.model_validate(r)
                for r in self.db.get_cache_elements(backend_id, "property")
            ],
            individuals=[
                OntologyIndividual.model_validate(r)
                for r in self.db.get_cache_elements(backend_id, "individual")
            ],
            namespaces=self.db.get_cache_namespaces(backend_id),
        )

    def list_cached_backend_ids(self) -> list[str]:
        return self.db.list_cache_backend_ids()

    def validate(self, backend_id: str, now: int | None = None) -> CacheValidation:
        """Check whether the cache of *backend_id* is still within its TTL.

        *now* is in epoch milliseconds and defaults to the current time.
        """
        metadata = self.get_metadata(backend_id)
        if metadata is None:
            return CacheValidation(exists=False, valid=False, stale=False)

        if now is None:
            now = self._now_ms()
        expires_at = metadata.last_updated + metadata.ttl
        valid = now < expires_at
        return CacheValidation(
            exists=True,
            valid=valid,
            stale=not valid,
            age=now - metadata.last_updated,
            ttl=metadata.ttl,
            expires_at=expires_at,
        )

    def get_by_iri(
        self,
        backend_id: str,
        iri: str,
        element_type: ElementType | None = None,
    ) -> OntologyElement | None:
        """Find an element by IRI; classes first, then properties, then individuals."""
        kinds = (element_type,) if element_type else LOOKUP_ORDER
        for kind in kinds:
            record = self.db.find_cache_element(backend_id, kind, iri)
            if record is not None:
                return _ELEMENT_ADAPTER.validate_python(record)
        return None

    def search(self, backend_id: str, options: SearchOptions) -> list[SearchResult]:
        """Rank the elements of one cache against a search string."""
        if options.case_sensitive:
            def fold(value: str) -> str:
                return value
        else:
            fold = str.lower

        needle = fold(options.query)
        kinds = [k for k in ELEMENT_TABLES if not options.types or k in options.types]

        results: list[SearchResult] = []
        for kind in kinds:
            for record in self.db.get_cache_elements(backend_id, kind):
                element = _ELEMENT_ADAPTER.validate_python(record)
                if not any(
                    _matches(value, needle, fold, options.prefix_only)
                    for value in (
                        element.iri, element.label,
                        element.description, element.local_name,
                    )
                ):
                    continue
                score, field = score_element(element, needle, fold)
                results.append(SearchResult(
                    element=element, score=score, matched_field=field,
                ))

        # sorted() is stable: ties keep class/property/individual order
        results = sorted(results, key=lambda r: r.score, reverse=True)
        return results[: options.limit]
