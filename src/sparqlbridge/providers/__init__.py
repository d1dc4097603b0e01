"""Backend providers, one per :class:`~sparqlbridge.models.BackendKind`."""

from .base import MAX_QUERY_LENGTH, BaseProvider
from .graphdb import GraphDBProvider
from .graphstudio import GraphStudioProvider
from .mobi import MobiProvider
from .placeholder import NeptuneProvider, StardogProvider
from .sparql11 import Sparql11Provider

__all__ = [
    "MAX_QUERY_LENGTH",
    "BaseProvider",
    "GraphDBProvider",
    "GraphStudioProvider",
    "MobiProvider",
    "NeptuneProvider",
    "StardogProvider",
    "Sparql11Provider",
]
