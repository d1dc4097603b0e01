"""Exception hierarchy shared by providers, the cache builder and the store."""

from __future__ import annotations

from enum import Enum


class GatewayError(Exception):
    """Base exception for all sparqlbridge errors."""

    pass


class ConfigurationError(GatewayError):
    """Raised when a backend or provider configuration is unusable."""

    pass


class BackendNotFoundError(ConfigurationError):
    """Raised when a backend id is not known to the registry."""

    def __init__(self, backend_id: str) -> None:
        super().__init__(f"Backend not found: {backend_id}")
        self.backend_id = backend_id


class CacheDisabledError(ConfigurationError):
    """Raised when ontology caching is switched off for a backend."""

    pass


class SizeLimitError(GatewayError):
    """Raised when a query or a fetched result exceeds a size ceiling."""

    pass


class TooManyElementsError(SizeLimitError):
    """Raised when discovery returns more elements than the cache allows."""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(
            f"Too many elements: {count} exceeds limit of {limit}"
        )
        self.count = count
        self.limit = limit


class AuthReason(str, Enum):
    """Why authentication failed."""

    INVALID_CREDENTIALS = "invalid_credentials"
    EXPIRED_SESSION = "expired_session"
    MISSING_CREDENTIALS = "missing_credentials"


class AuthenticationError(GatewayError):
    """Raised when a backend rejects, or cannot be given, credentials."""

    def __init__(
        self,
        message: str,
        reason: AuthReason = AuthReason.INVALID_CREDENTIALS,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class TransportError(GatewayError):
    """Raised when the endpoint answers with an error status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class NetworkError(TransportError):
    """Raised when no HTTP response was received at all."""

    def __init__(self, message: str, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out


class ParseError(GatewayError):
    """Raised when a discovery response cannot be interpreted."""

    pass


class UnknownError(GatewayError):
    """Raised for failures that fit no other category."""

    pass


class CacheFetchError(GatewayError):
    """Raised when one phase of an ontology cache fetch fails."""

    def __init__(self, phase: str, cause: Exception) -> None:
        super().__init__(f"Failed to fetch {phase}: {cause}")
        self.phase = phase
        self.cause = cause
