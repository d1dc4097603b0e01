"""
Mobi knowledge graph platform provider.

Queries are scoped either to a whole repository or to a single record
(ontology, dataset, shapes graph) with optional branch selection and
import resolution.  Authentication is a cookie session obtained from
``/mobirest/session`` and kept on a dedicated :class:`requests.Session`.
"""

from __future__ import annotations

import logging
from urllib.parse import quote, urlencode

import requests

from ..errors import AuthenticationError, AuthReason, ConfigurationError
from ..models import BackendConfig, BackendKind, Credentials, QueryResult
from ..provider_config import MobiConfig, ProviderConfig, provider_config_for
from ..query_type import MimeTypes, QueryType
from ..sessions import SESSION_TTL, SessionCache, session_key
from .base import (
    EXECUTE_TIMEOUT,
    LOGIN_TIMEOUT,
    VALIDATE_TIMEOUT,
    VALIDATION_QUERY,
    BaseProvider,
)

logger = logging.getLogger(__name__)

#: Record type IRI -> SPARQL store segment
STORE_TYPES = {
    "http://mobi.com/ontologies/dataset#DatasetRecord": "dataset-record",
    "http://mobi.com/ontologies/ontology-editor#OntologyRecord": "ontology-record",
    "http://mobi.com/ontologies/shapes-graph-editor#ShapesGraphRecord": "shapes-graph-record",
}
DEFAULT_STORE_TYPE = "repository"


def store_type_for_record(record_type: str | None) -> str:
    return STORE_TYPES.get(record_type or "", DEFAULT_STORE_TYPE)


class MobiProvider(BaseProvider):
    kind = BackendKind.MOBI
    results_accept = f"{MimeTypes.JSON}, application/json"

    @property
    def sessions(self) -> SessionCache:
        return self.broker.cache("mobi", SESSION_TTL)

    def build_endpoint_url(self, config: BackendConfig) -> str:
        """Format: ``{base}/mobirest/sparql/{storeType}/{recordId}?branchId=...``

        Falls back to ``{base}/mobirest/sparql`` when nothing is selected.
        """
        fallback = f"{self.base_url(config)}/mobirest/sparql"
        try:
            provider_config = provider_config_for(config)
        except ConfigurationError:
            return fallback
        if not isinstance(provider_config, MobiConfig):
            return fallback

        if provider_config.query_mode == "repository":
            if not provider_config.repository_id:
                return fallback
            url = f"{fallback}/repository/{quote(provider_config.repository_id, safe='')}"
        else:
            if not provider_config.record_id:
                return fallback
            store_type = provider_config.store_type or store_type_for_record(
                provider_config.record_type
            )
            url = f"{fallback}/{store_type}/{quote(provider_config.record_id, safe='')}"

        params: dict[str, str] = {}
        if provider_config.branch_id:
            params["branchId"] = provider_config.branch_id
        if provider_config.include_imports:
            params["includeImports"] = "true"
        if params:
            url += "?" + urlencode(params)
        return url

    def require_config(self, config: BackendConfig) -> MobiConfig:
        provider_config = provider_config_for(config)
        if not isinstance(provider_config, MobiConfig):
            raise ConfigurationError("No Mobi configuration found")
        if provider_config.query_mode == "repository":
            if not provider_config.repository_id:
                raise ConfigurationError(
                    "No repository selected. Please select a repository in "
                    "backend configuration."
                )
        elif not provider_config.record_id:
            raise ConfigurationError(
                "No record selected. Please select a record in backend "
                "configuration."
            )
        return provider_config

    # ── session handling ──────────────────────────────────────────

    def login(
        self,
        config: BackendConfig,
        credentials: Credentials,
    ) -> requests.Session:
        """Open a cookie session with the Mobi server."""
        session = self.transport.new_session()
        response = self.transport.request(
            "POST",
            f"{self.base_url(config)}/mobirest/session",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "username": credentials.username,
                "password": credentials.password,
            },
            timeout=LOGIN_TIMEOUT,
            verify=not config.allow_insecure,
            session=session,
        )
        if response.status_code == 401:
            raise AuthenticationError(
                "Authentication failed: Invalid username or password",
                reason=AuthReason.INVALID_CREDENTIALS,
                status_code=401,
            )
        if not response.ok:
            raise AuthenticationError(
                f"Authentication failed: {response.server_message()}",
                status_code=response.status_code,
            )
        logger.info("Opened Mobi session on %s as %s", config.endpoint, credentials.username)
        return session

    def get_session(
        self,
        config: BackendConfig,
        credentials: Credentials | None,
        force_refresh: bool = False,
    ) -> requests.Session:
        """Cached session for the user, or an anonymous one.

        Anonymous sessions are never cached.
        """
        if not credentials or not credentials.username or not credentials.password:
            return self.transport.new_session()

        key = session_key(config.endpoint, credentials.username)
        if force_refresh:
            self.sessions.invalidate(key)
        return self.sessions.acquire(key, lambda: self.login(config, credentials))

    # ── execution ─────────────────────────────────────────────────

    def _execute(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        query: str,
        query_type: QueryType,
        credentials: Credentials | None,
    ) -> QueryResult:
        endpoint = self.build_endpoint_url(config)
        logger.debug(
            "Executing %s query (%d chars) against %s",
            query_type, len(query), endpoint,
        )

        retries_left = 1
        force_refresh = False
        while True:
            session = self.get_session(config, credentials, force_refresh)
            response = self.post_query(
                endpoint,
                query,
                accept=self.accept_for(query_type),
                timeout=EXECUTE_TIMEOUT,
                verify=not config.allow_insecure,
                session=session,
            )
            if response.status_code != 401:
                break
            if retries_left == 0:
                raise AuthenticationError(
                    "SPARQL query failed after re-authentication: "
                    f"{response.server_message()}",
                    reason=AuthReason.EXPIRED_SESSION,
                    status_code=401,
                )
            logger.info("Mobi session rejected, re-authenticating once")
            retries_left -= 1
            force_refresh = True

        if response.status_code == 403 and credentials and credentials.username:
            self.sessions.invalidate(session_key(config.endpoint, credentials.username))
        return self.to_result(response, query_type)

    def _validate(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        credentials: Credentials | None,
    ) -> None:
        response = self.post_query(
            self.build_endpoint_url(config),
            VALIDATION_QUERY,
            accept=self.results_accept,
            timeout=VALIDATE_TIMEOUT,
            verify=not config.allow_insecure,
            session=self.get_session(config, credentials),
            context="Connection failed",
        )
        self.check_validation_response(response)
