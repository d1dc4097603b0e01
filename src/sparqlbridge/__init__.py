"""sparqlbridge: one query contract for heterogeneous SPARQL backends.

Main modules:
- gateway: QueryGateway, the public operation surface
- providers: per-product adapters (SPARQL 1.1, GraphDB, Graph Studio, Mobi)
- cache_builder / cache_store: ontology element discovery, persistence and search
- registry: backend registry, credential store and YAML loading
"""

from .cache_builder import OntologyCacheBuilder
from .cache_store import OntologyCacheStore
from .database import Database
from .errors import (
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    ParseError,
    SizeLimitError,
    TransportError,
)
from .factory import BackendFactory
from .gateway import QueryGateway
from .models import BackendConfig, BackendKind, Credentials, OntologyCache, QueryResult
from .registry import InMemoryBackendRegistry, InMemoryCredentialStore, load_backends_file

# Import version information
from .version import VERSION

__all__ = [
    "VERSION",
    "AuthenticationError",
    "BackendConfig",
    "BackendFactory",
    "BackendKind",
    "ConfigurationError",
    "Credentials",
    "Database",
    "GatewayError",
    "InMemoryBackendRegistry",
    "InMemoryCredentialStore",
    "OntologyCache",
    "OntologyCacheBuilder",
    "OntologyCacheStore",
    "ParseError",
    "QueryGateway",
    "QueryResult",
    "SizeLimitError",
    "TransportError",
    "load_backends_file",
]
