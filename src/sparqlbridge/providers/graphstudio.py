"""Altair Graph Studio provider: graphmart queries with layer selection."""

from __future__ import annotations

import logging
from urllib.parse import quote, urlencode

from ..errors import ConfigurationError
from ..models import BackendConfig, BackendKind, Credentials, QueryResult
from ..provider_config import GraphStudioConfig, ProviderConfig, provider_config_for
from ..query_type import MimeTypes, QueryType
from .base import EXECUTE_TIMEOUT, BaseProvider

logger = logging.getLogger(__name__)


class GraphStudioProvider(BaseProvider):
    kind = BackendKind.GRAPHSTUDIO
    results_accept = f"{MimeTypes.JSON}, application/json"

    def build_endpoint_url(self, config: BackendConfig) -> str:
        """Format: ``{base}/sparql/graphmart/{uri}?default-graph-uri={layer}``

        The graphmart URI is fully percent-encoded (uppercase hex).  Layers
        are only sent when a subset is selected.
        """
        try:
            provider_config = provider_config_for(config)
        except ConfigurationError:
            return config.endpoint
        if not isinstance(provider_config, GraphStudioConfig):
            return config.endpoint
        if not provider_config.graphmart_uri:
            return config.endpoint

        url = (
            f"{self.base_url(config)}/sparql/graphmart/"
            f"{quote(provider_config.graphmart_uri, safe='')}"
        )
        if not provider_config.all_layers:
            url += "?" + urlencode(
                [("default-graph-uri", layer) for layer in provider_config.selected_layers]
            )
        return url

    def require_config(self, config: BackendConfig) -> GraphStudioConfig:
        provider_config = provider_config_for(config)
        if not isinstance(provider_config, GraphStudioConfig) or not provider_config.graphmart_uri:
            raise ConfigurationError(
                "No graphmart selected. Please select a graphmart in "
                "backend configuration."
            )
        return provider_config

    def _execute(
        self,
        config: BackendConfig,
        provider_config: ProviderConfig | None,
        query: str,
        query_type: QueryType,
        credentials: Credentials | None,
    ) -> QueryResult:
        endpoint = self.build_endpoint_url(config)
        logger.debug("Executing %s query against graphmart %s", query_type, endpoint)
        response = self.post_query(
            endpoint,
            query,
            accept=self.accept_for(query_type),
            headers=self.auth_headers(config, credentials),
            timeout=EXECUTE_TIMEOUT,
            verify=not config.allow_insecure,
        )
        return self.to_result(response, query_type)
