"""
Pydantic models for backends, query results and ontology caches.

Python attributes are snake_case; ``model_dump(by_alias=True)`` produces
the camelCase shape used on the wire and in persisted records
(``providerConfig``, ``lastUpdated``, ``propertyType`` ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .discovery import (
    CLASSES_QUERY,
    DEFAULT_MAX_ELEMENTS,
    DEFAULT_TTL_MS,
    INDIVIDUALS_QUERY,
    PROPERTIES_QUERY,
)
from .query_type import QueryType

#: Bump when the persisted cache layout changes.
CACHE_SCHEMA_VERSION = 1


class _Model(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Backends ──────────────────────────────────────────────────────


class BackendKind(str, Enum):
    """Product / protocol family a backend belongs to."""

    SPARQL11 = "sparql-1.1"
    GRAPHDB = "graphdb"
    GRAPHSTUDIO = "graphstudio"
    MOBI = "mobi"
    NEPTUNE = "neptune"
    STARDOG = "stardog"


class AuthType(str, Enum):
    """How requests to a backend are authenticated."""

    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"
    CUSTOM = "custom"


class CacheQueryTemplates(_Model):
    """SPARQL queries used to discover ontology elements."""

    classes: str = CLASSES_QUERY
    properties: str = PROPERTIES_QUERY
    individuals: str = INDIVIDUALS_QUERY


class CacheConfig(_Model):
    """Ontology cache policy for one backend."""

    enabled: bool = False
    ttl: int = Field(DEFAULT_TTL_MS, ge=0, description="TTL in milliseconds")
    max_elements: int = Field(DEFAULT_MAX_ELEMENTS, ge=0)
    queries: CacheQueryTemplates = Field(default_factory=CacheQueryTemplates)


DEFAULT_CACHE_CONFIG = CacheConfig()


class BackendConfig(_Model):
    """Non-sensitive description of one configured backend."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True,
    )

    id: str
    name: str
    kind: BackendKind = Field(alias="type")
    endpoint: str
    auth_type: AuthType = AuthType.NONE
    provider_config: Optional[Union[str, dict[str, Any]]] = None
    allow_insecure: bool = False
    cache_config: Optional[CacheConfig] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class Credentials(_Model):
    """Secrets for one backend. Never persisted by sparqlbridge."""

    username: Optional[str] = None
    password: Optional[str] = Field(None, repr=False)
    token: Optional[str] = Field(None, repr=False)
    headers: Optional[dict[str, str]] = Field(None, repr=False)


class ValidationResult(_Model):
    """Outcome of a connectivity check."""

    valid: bool
    error: Optional[str] = None


class QueryResult(_Model):
    """Response of a forwarded query."""

    data: Any
    query_type: QueryType
    content_type: str


# ── Ontology elements ─────────────────────────────────────────────

PropertyType = Literal["object", "datatype", "annotation"]
ElementType = Literal["class", "property", "individual"]


class OntologyElement(_Model):
    """Fields shared by classes, properties and individuals."""

    iri: str
    label: Optional[str] = None
    description: Optional[str] = None
    namespace: Optional[str] = None
    local_name: Optional[str] = None


class OntologyClass(OntologyElement):
    type: Literal["class"] = "class"


class OntologyProperty(OntologyElement):
    type: Literal["property"] = "property"
    property_type: PropertyType = "object"
    domain: list[str] = Field(default_factory=list)
    range: list[str] = Field(default_factory=list)


class OntologyIndividual(OntologyElement):
    type: Literal["individual"] = "individual"
    classes: list[str] = Field(default_factory=list)


AnyOntologyElement = Annotated[
    Union[OntologyClass, OntologyProperty, OntologyIndividual],
    Field(discriminator="type"),
]


# ── Caches ────────────────────────────────────────────────────────


class CacheStats(_Model):
    class_count: int = 0
    property_count: int = 0
    individual_count: int = 0
    total_count: int = 0
    namespace_count: int = 0
    size_bytes: Optional[int] = None


class CacheMetadata(_Model):
    backend_id: str
    last_updated: int = Field(..., description="Epoch milliseconds")
    ttl: int = Field(..., description="Milliseconds")
    version: int = CACHE_SCHEMA_VERSION
    stats: CacheStats = Field(default_factory=CacheStats)


class OntologyCache(_Model):
    """Complete ontology index for one backend."""

    metadata: CacheMetadata
    classes: list[OntologyClass] = Field(default_factory=list)
    properties: list[OntologyProperty] = Field(default_factory=list)
    individuals: list[OntologyIndividual] = Field(default_factory=list)
    namespaces: dict[str, str] = Field(default_factory=dict)


CacheLoadStatus = Literal["idle", "loading", "refreshing", "error", "success"]


class CacheProgress(_Model):
    status: CacheLoadStatus
    current_type: Optional[ElementType] = None
    fetched_count: int = 0
    total_count: Optional[int] = None
    error: Optional[str] = None


class CacheValidation(_Model):
    exists: bool
    valid: bool
    stale: bool
    age: Optional[int] = None
    ttl: Optional[int] = None
    expires_at: Optional[int] = None


class SearchOptions(_Model):
    query: str
    types: Optional[list[ElementType]] = None
    limit: int = Field(50, ge=0)
    case_sensitive: bool = False
    prefix_only: bool = False


class SearchResult(_Model):
    element: AnyOntologyElement
    score: float
    matched_field: Literal["iri", "label", "description", "localName"]


class QueryTestResult(_Model):
    """Outcome of running an edited discovery query."""

    valid: bool
    error: Optional[str] = None
    result_count: Optional[int] = None


RefreshMode = Literal["none", "background", "foreground"]


class SmartRefreshResult(_Model):
    """Cache returned by a smart refresh and how it was obtained."""

    cache: OntologyCache
    validation: CacheValidation
    refresh: RefreshMode = "none"
