"""Map backend kinds to provider instances."""

from __future__ import annotations

import logging

from .errors import ConfigurationError
from .models import BackendKind
from .providers import (
    BaseProvider,
    GraphDBProvider,
    GraphStudioProvider,
    MobiProvider,
    NeptuneProvider,
    Sparql11Provider,
    StardogProvider,
)
from .sessions import SessionBroker
from .transport import HttpTransport

logger = logging.getLogger(__name__)

PROVIDER_TYPES: dict[BackendKind, type[BaseProvider]] = {
    BackendKind.SPARQL11: Sparql11Provider,
    BackendKind.GRAPHDB: GraphDBProvider,
    BackendKind.GRAPHSTUDIO: GraphStudioProvider,
    BackendKind.MOBI: MobiProvider,
    BackendKind.NEPTUNE: NeptuneProvider,
    BackendKind.STARDOG: StardogProvider,
}


class BackendFactory:
    """One provider instance per kind, sharing a transport and session broker."""

    def __init__(
        self,
        transport: HttpTransport | None = None,
        broker: SessionBroker | None = None,
    ) -> None:
        self.transport = transport or HttpTransport()
        self.broker = broker or SessionBroker()
        self._providers: dict[BackendKind, BaseProvider] = {
            kind: provider_type(self.transport, self.broker)
            for kind, provider_type in PROVIDER_TYPES.items()
        }

    @staticmethod
    def _coerce(kind: BackendKind | str) -> BackendKind:
        try:
            return BackendKind(kind)
        except ValueError:
            raise ConfigurationError(f"Unsupported backend type: {kind}") from None

    def get_provider(self, kind: BackendKind | str) -> BaseProvider:
        """Return the provider for *kind*.

        Raises:
            ConfigurationError: If *kind* is not a known backend kind.
        """
        return self._providers[self._coerce(kind)]

    def available_kinds(self) -> list[BackendKind]:
        return list(self._providers)

    def is_supported(self, kind: BackendKind | str) -> bool:
        try:
            self._coerce(kind)
        except ConfigurationError:
            return False
        return True
