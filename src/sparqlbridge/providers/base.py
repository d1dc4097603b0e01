"""Provider contract shared by every backend kind."""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping
from urllib.parse import urlparse

import requests

from ..errors import (
    AuthenticationError,
    AuthReason,
    GatewayError,
    NetworkError,
    SizeLimitError,
    TransportError,
    UnknownError,
)
from ..models import (
    AuthType,
    BackendConfig,
    BackendKind,
    Credentials,
    QueryResult,
    ValidationResult,
)
from ..provider_config import ProviderConfig, provider_config_for
from ..query_type import (
    MimeTypes,
    QueryType,
    accept_header_for,
    detect_query_type,
    is_rdf_response,
)
from ..sessions import SessionBroker
from ..transport import HttpTransport, TransportResponse

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 100_000
EXECUTE_TIMEOUT = 30.0
VALIDATE_TIMEOUT = 10.0
LOGIN_TIMEOUT = 10.0

VALIDATION_QUERY = "SELECT (COUNT(?s) as ?subjects) WHERE { ?s ?p ?o . } LIMIT 1"


def check_query_size(query: str) -> None:
    """Reject queries over :data:`MAX_QUERY_LENGTH` characters."""
    if len(query) > MAX_QUERY_LENGTH:
        raise SizeLimitError(
            f"Query too large ({len(query)} characters, max 100KB)"
        )


def validate_url(url: str) -> bool:
    """Only HTTP(S) URLs with a host are accepted as endpoints."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def basic_auth_header(username: str, password: str) -> str:
    encoded = base64.b64encode(f"{username}:{password}".encode()).decode()
    return f"Basic {encoded}"


class BaseProvider(ABC):
    """Adapter between the uniform gateway contract and one backend kind.

    Subclasses implement :meth:`_execute`; the public :meth:`execute`
    checks the query size and the provider configuration before any
    network call, and :meth:`validate` converts every failure into an
    invalid :class:`ValidationResult`.
    """

    kind: ClassVar[BackendKind]
    #: Accept header for SELECT/ASK queries.
    results_accept: ClassVar[str] = MimeTypes.SELECT_ACCEPT

    def __init__(
        self,
        transport: HttpTransport | None = None,
        broker: SessionBroker | None = None,
    ) -> None:
        self.transport = transport or HttpTransport()
        self.broker = broker or SessionBroker()

    # ── contract ──────────────────────────────────────────────────

    def build_endpoint_url(self, config: BackendConfig) -> str:
        """Final URL queries are posted to. Defaults to the endpoint."""
        return config.endpoint

    def execute(
        self,
        config: BackendConfig,
        query: str,
        credentials: Credentials | None = None,
    ) -> QueryResult:
        """Forward *query* to the backend and return its response.

        Raises:
            SizeLimitError: Query longer than 100,000 characters.
            ConfigurationError: Provider configuration missing or malformed.
            AuthenticationError: Credentials missing or rejected.
            TransportError: Endpoint unreachable or answered with an error.
            UnknownError: Anything else.
        """
        check_query_size(query)
        provider_config = self.require_config(config)
        query_type = detect_query_type(query)
        try:
            return self._execute(
                config, provider_config, query, query_type, credentials,
            )
        except GatewayError:
            raise
        except Exception as exc:
            logger.exception("Unexpected %s provider failure", self.kind.value)
            raise UnknownError(f"Query execution failed: {exc}") from exc

    def validate(
        self,
        config: BackendConfig,
        credentials: Credentials | None = None,
    ) -> ValidationResult:
        """Check that the backend answers a trivial query. Never raises."""
        if not validate_url(config.endpoint):
            return ValidationResult(valid=False, error="Invalid endpoint URL")
        try:
            provider_config = self.require_config(config)
            self._validate(config, provider_config, credentials)
        except GatewayError as exc:
            return ValidationResult(valid=False, error=str(exc))
        except Exception as exc:
            logger.warning("Validation of %s failed: %s", config.endpoint, exc)
            return ValidationResult(
                valid=False, error=f"Connection failed: {exc}",
            )
        return ValidationResult(valid=True)

    def require_config(self, config: BackendConfig) -> ProviderConfig | None:
        """Parse the provider configuration; subclasses check required fields."""
        return provider_config_for(config)

    @abstractmethod
    def _execute(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        query: str,
        query_type: QueryType,
        credentials: Credentials | None,
    ) -> QueryResult:
        """Kind-specific execution."""

    def _validate(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        credentials: Credentials | None,
    ) -> None:
        """Post :data:`VALIDATION_QUERY`; raise on anything but HTTP 200."""
        response = self.post_query(
            self.build_endpoint_url(config),
            VALIDATION_QUERY,
            accept=self.results_accept,
            headers=self.auth_headers(config, credentials),
            timeout=VALIDATE_TIMEOUT,
            verify=not config.allow_insecure,
            context="Connection failed",
        )
        self.check_validation_response(response)

    # ── helpers ───────────────────────────────────────────────────

    def auth_headers(
        self,
        config: BackendConfig,
        credentials: Credentials | None,
    ) -> dict[str, str]:
        """Per-request headers for the generic auth strategies."""
        if config.auth_type == AuthType.NONE:
            return {}

        creds = credentials or Credentials()
        if config.auth_type == AuthType.BASIC:
            if creds.username and creds.password:
                return {
                    "Authorization": basic_auth_header(
                        creds.username, creds.password,
                    ),
                }
        elif config.auth_type == AuthType.BEARER:
            if creds.token:
                return {"Authorization": f"Bearer {creds.token}"}
        elif config.auth_type == AuthType.CUSTOM:
            if creds.headers:
                return dict(creds.headers)

        raise AuthenticationError(
            f"No credentials available for {config.auth_type.value} "
            f"authentication on backend '{config.name}'",
            reason=AuthReason.MISSING_CREDENTIALS,
        )

    def accept_for(self, query_type: QueryType) -> str:
        if is_rdf_response(query_type):
            return accept_header_for(query_type)
        return self.results_accept

    def post_query(
        self,
        url: str,
        query: str,
        *,
        accept: str,
        headers: Mapping[str, str] | None = None,
        timeout: float = EXECUTE_TIMEOUT,
        verify: bool = True,
        session: requests.Session | None = None,
        context: str = "SPARQL query failed",
    ) -> TransportResponse:
        """POST *query* with the SPARQL protocol's direct-body encoding."""
        all_headers = {
            "Content-Type": MimeTypes.SPARQL_QUERY,
            "Accept": accept,
        }
        all_headers.update(headers or {})
        try:
            return self.transport.request(
                "POST",
                url,
                headers=all_headers,
                data=query.encode("utf-8"),
                timeout=timeout,
                verify=verify,
                session=session,
            )
        except NetworkError as exc:
            raise NetworkError(
                f"{context} (network error): {exc}", timed_out=exc.timed_out,
            ) from exc

    def to_result(
        self,
        response: TransportResponse,
        query_type: QueryType,
        context: str = "SPARQL query failed",
    ) -> QueryResult:
        """Map an HTTP response to a :class:`QueryResult` or raise."""
        self.raise_for_status(response, context)

        if is_rdf_response(query_type):
            data: Any = response.text
        elif response.is_html():
            raise TransportError(
                f"{context}: endpoint returned HTML instead of query results",
                status_code=response.status_code,
            )
        else:
            try:
                data = response.json()
            except ValueError:
                data = response.text

        return QueryResult(
            data=data,
            query_type=query_type,
            content_type=response.content_type,
        )

    def raise_for_status(
        self,
        response: TransportResponse,
        context: str = "SPARQL query failed",
    ) -> None:
        if response.ok:
            return
        status = response.status_code
        message = response.server_message()
        if status in (401, 403):
            raise AuthenticationError(
                f"Authentication failed ({status}): {message}",
                reason=AuthReason.INVALID_CREDENTIALS,
                status_code=status,
            )
        raise TransportError(
            f"{context} ({status}): {message}",
            status_code=status,
            server_message=message,
        )

    def check_validation_response(self, response: TransportResponse) -> None:
        self.raise_for_status(response, "Connection failed")
        if response.status_code != 200:
            raise TransportError(
                f"Unexpected status code: {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def base_url(config: BackendConfig) -> str:
        return config.endpoint.rstrip("/")
