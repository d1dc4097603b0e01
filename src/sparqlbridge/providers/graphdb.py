"""
Ontotext GraphDB provider (versions 9.x through 11.x).

Key features:
- Repository-scoped SPARQL endpoint (``/repositories/{id}``)
- Inference, ``owl:sameAs`` and timeout control through query parameters
- GDB token login with caching, trying both historical login endpoints
- Fallback to per-request Basic auth when token login is unavailable
"""

from __future__ import annotations

import logging
from typing import cast
from urllib.parse import quote, urlencode

from ..errors import (
    AuthenticationError,
    AuthReason,
    ConfigurationError,
    GatewayError,
)
from ..models import (
    AuthType,
    BackendConfig,
    BackendKind,
    Credentials,
    QueryResult,
)
from ..provider_config import GraphDBConfig, ProviderConfig, provider_config_for
from ..query_type import MimeTypes, QueryType
from ..sessions import TOKEN_TTL, SessionCache, SessionKey, session_key
from .base import (
    EXECUTE_TIMEOUT,
    LOGIN_TIMEOUT,
    VALIDATE_TIMEOUT,
    VALIDATION_QUERY,
    BaseProvider,
    basic_auth_header,
)

logger = logging.getLogger(__name__)


class GraphDBProvider(BaseProvider):
    """Provider for GraphDB repositories."""

    kind = BackendKind.GRAPHDB
    results_accept = f"{MimeTypes.JSON}, application/json"

    @property
    def tokens(self) -> SessionCache:
        return self.broker.cache("graphdb", TOKEN_TTL)

    def build_endpoint_url(self, config: BackendConfig) -> str:
        """Format: ``{base}/repositories/{repositoryId}?infer=false&...``"""
        try:
            provider_config = provider_config_for(config)
        except ConfigurationError:
            return config.endpoint
        if not isinstance(provider_config, GraphDBConfig):
            return config.endpoint
        if not provider_config.repository_id:
            return config.endpoint

        url = (
            f"{self.base_url(config)}/repositories/"
            f"{quote(provider_config.repository_id, safe='')}"
        )
        params = self.query_params(provider_config)
        if params:
            url += "?" + urlencode(params)
        return url

    @staticmethod
    def query_params(provider_config: GraphDBConfig) -> dict[str, str]:
        """Inference is on by default in GraphDB; only send overrides."""
        params: dict[str, str] = {}
        if provider_config.inference_enabled is False:
            params["infer"] = "false"
        if provider_config.same_as is False:
            params["sameAs"] = "false"
        if provider_config.timeout:
            params["timeout"] = str(provider_config.timeout)
        return params

    def require_config(self, config: BackendConfig) -> GraphDBConfig:
        provider_config = provider_config_for(config)
        if not isinstance(provider_config, GraphDBConfig) or not provider_config.repository_id:
            raise ConfigurationError(
                "No repository selected. Please select a repository in "
                "backend configuration."
            )
        return provider_config

    # ── authentication ────────────────────────────────────────────

    def login(self, config: BackendConfig, credentials: Credentials) -> str:
        """Exchange username/password for a GDB token.

        Tries the JSON-body endpoint (10.x+) first, then the path-based
        endpoint with ``X-GraphDB-Password`` (9.x).
        """
        base = self.base_url(config)
        verify = not config.allow_insecure

        try:
            response = self.transport.request(
                "POST",
                f"{base}/rest/login",
                headers={"Content-Type": "application/json"},
                json={
                    "username": credentials.username,
                    "password": credentials.password,
                },
                timeout=LOGIN_TIMEOUT,
                verify=verify,
            )
        except GatewayError as exc:
            logger.info("/rest/login failed (%s), trying alternative endpoint", exc)
        else:
            token = response.header("Authorization") if response.ok else None
            if token:
                logger.info("Authenticated to %s via /rest/login", base)
                return token
            logger.info("/rest/login returned no token, trying alternative endpoint")

        response = self.transport.request(
            "POST",
            f"{base}/rest/login/{quote(credentials.username or '', safe='')}",
            headers={
                "X-GraphDB-Password": credentials.password or "",
                "Content-Type": "application/json",
            },
            timeout=LOGIN_TIMEOUT,
            verify=verify,
        )
        if response.status_code == 401:
            raise AuthenticationError(
                "Authentication failed: Invalid username or password",
                reason=AuthReason.INVALID_CREDENTIALS,
                status_code=401,
            )
        self.raise_for_status(response, "Authentication failed")
        token = response.header("Authorization")
        if not token:
            raise AuthenticationError("Authentication failed: No token received")
        logger.info("Authenticated to %s via /rest/login/{username}", base)
        return token

    def graphdb_auth_headers(
        self,
        config: BackendConfig,
        credentials: Credentials | None,
    ) -> tuple[dict[str, str], SessionKey | None]:
        """Auth headers, plus the token cache key when a token is used."""
        if config.auth_type == AuthType.BEARER and credentials and credentials.token:
            token = credentials.token
            if not token.startswith("GDB "):
                token = f"GDB {token}"
            return {"Authorization": token}, None

        if config.auth_type == AuthType.BASIC:
            if not credentials or not credentials.username or not credentials.password:
                raise AuthenticationError(
                    "Username and password are required for authentication",
                    reason=AuthReason.MISSING_CREDENTIALS,
                )
            key = session_key(config.endpoint, credentials.username)
            try:
                token = self.tokens.acquire(
                    key, lambda: self.login(config, credentials),
                )
            except GatewayError as exc:
                logger.info("Token login failed (%s), falling back to Basic auth", exc)
                return {
                    "Authorization": basic_auth_header(
                        credentials.username, credentials.password,
                    ),
                }, None
            return {"Authorization": token}, key

        return self.auth_headers(config, credentials), None

    # ── execution ─────────────────────────────────────────────────

    def _execute(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        query: str,
        query_type: QueryType,
        credentials: Credentials | None,
    ) -> QueryResult:
        graphdb_config = cast(GraphDBConfig, provider_config)
        endpoint = self.build_endpoint_url(config)
        headers, token_key = self.graphdb_auth_headers(config, credentials)

        logger.debug(
            "Executing %s query (%d chars) against %s",
            query_type, len(query), endpoint,
        )
        response = self.post_query(
            endpoint,
            query,
            accept=self.accept_for(query_type),
            headers=headers,
            timeout=float(graphdb_config.timeout or EXECUTE_TIMEOUT),
            verify=not config.allow_insecure,
        )

        if response.status_code in (401, 403):
            if credentials and credentials.username:
                self.tokens.invalidate(
                    session_key(config.endpoint, credentials.username),
                )
            raise AuthenticationError(
                f"Authentication failed ({response.status_code}): Please "
                "check your credentials or re-authenticate",
                reason=(
                    AuthReason.EXPIRED_SESSION if token_key
                    else AuthReason.INVALID_CREDENTIALS
                ),
                status_code=response.status_code,
            )

        return self.to_result(response, query_type)

    def _validate(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        credentials: Credentials | None,
    ) -> None:
        headers, _ = self.graphdb_auth_headers(config, credentials)
        response = self.post_query(
            self.build_endpoint_url(config),
            VALIDATION_QUERY,
            accept=self.results_accept,
            headers=headers,
            timeout=VALIDATE_TIMEOUT,
            verify=not config.allow_insecure,
            context="Connection failed",
        )
        self.check_validation_response(response)
