"""Generic SPARQL 1.1 protocol provider."""

from __future__ import annotations

import logging

from ..models import BackendConfig, BackendKind, Credentials, QueryResult
from ..provider_config import ProviderConfig
from ..query_type import QueryType
from .base import EXECUTE_TIMEOUT, VALIDATE_TIMEOUT, BaseProvider

logger = logging.getLogger(__name__)

VALIDATION_ASK = "ASK { ?s ?p ?o }"


class Sparql11Provider(BaseProvider):
    """Standard endpoint: URL used verbatim, generic auth, no session."""

    kind = BackendKind.SPARQL11

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
        response = self.post_query(
            endpoint,
            query,
            accept=self.accept_for(query_type),
            headers=self.auth_headers(config, credentials),
            timeout=EXECUTE_TIMEOUT,
            verify=not config.allow_insecure,
        )
        return self.to_result(response, query_type)

    def _validate(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        credentials: Credentials | None,
    ) -> None:
        response = self.post_query(
            self.build_endpoint_url(config),
            VALIDATION_ASK,
            accept=self.results_accept,
            headers=self.auth_headers(config, credentials),
            timeout=VALIDATE_TIMEOUT,
            verify=not config.allow_insecure,
            context="Connection failed",
        )
        self.check_validation_response(response)
