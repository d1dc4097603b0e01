"""Backend kinds that are recognised but not supported yet."""

from __future__ import annotations

from ..errors import ConfigurationError
from ..models import (
    BackendConfig,
    BackendKind,
    Credentials,
    QueryResult,
    ValidationResult,
)
from ..provider_config import ProviderConfig
from ..query_type import QueryType
from .base import BaseProvider


class PlaceholderProvider(BaseProvider):
    """Always fails; keeps the kind enumeration closed."""

    product: str = ""

    def _message(self) -> str:
        return f"{self.product} provider not yet implemented"

    def execute(
        self,
        config: BackendConfig,
        query: str,
        credentials: Credentials | None = None,
    ) -> QueryResult:
        raise ConfigurationError(self._message())

    def validate(
        self,
        config: BackendConfig,
        credentials: Credentials | None = None,
    ) -> ValidationResult:
        return ValidationResult(valid=False, error=self._message())

    def _execute(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        query: str,
        query_type: QueryType,
        credentials: Credentials | None,
    ) -> QueryResult:
        raise ConfigurationError(self._message())


class NeptuneProvider(PlaceholderProvider):
    kind = BackendKind.NEPTUNE
    product = "AWS Neptune"


class StardogProvider(PlaceholderProvider):
    kind = BackendKind.STARDOG
    product = "Stardog"
