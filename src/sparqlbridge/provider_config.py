"""Per-kind provider configuration records.

``BackendConfig.provider_config`` is stored either as a JSON string (the
registry's serialized form) or as a mapping.  :func:`parse_provider_config`
turns it into the typed record for the backend's kind, once, and raises
:class:`~sparqlbridge.errors.ConfigurationError` when it is malformed.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .errors import ConfigurationError
from .models import BackendConfig, BackendKind

ALL_LAYERS = "ALL_LAYERS"


class _ProviderConfig(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore",
    )


class GraphDBConfig(_ProviderConfig):
    """Repository selection and query options for GraphDB."""

    repository_id: Optional[str] = None
    repository_title: Optional[str] = None
    inference_enabled: Optional[bool] = None
    same_as: Optional[bool] = None
    timeout: Optional[int] = Field(None, gt=0, description="Seconds")


class GraphStudioConfig(_ProviderConfig):
    """Graphmart and layer selection for Graph Studio."""

    graphmart_uri: Optional[str] = None
    graphmart_name: Optional[str] = None
    selected_layers: list[str] = Field(default_factory=list)

    @property
    def all_layers(self) -> bool:
        return not self.selected_layers or ALL_LAYERS in self.selected_layers


class MobiConfig(_ProviderConfig):
    """Record or repository selection for Mobi."""

    query_mode: Literal["repository", "record"] = "record"
    repository_id: Optional[str] = None
    repository_title: Optional[str] = None
    catalog_id: Optional[str] = None
    catalog_title: Optional[str] = None
    record_id: Optional[str] = None
    record_title: Optional[str] = None
    record_type: Optional[str] = None
    branch_id: Optional[str] = None
    branch_title: Optional[str] = None
    include_imports: bool = False
    store_type: Optional[str] = None


ProviderConfig = Union[GraphDBConfig, GraphStudioConfig, MobiConfig]

CONFIG_TYPES: dict[BackendKind, type[_ProviderConfig]] = {
    BackendKind.GRAPHDB: GraphDBConfig,
    BackendKind.GRAPHSTUDIO: GraphStudioConfig,
    BackendKind.MOBI: MobiConfig,
}


def _load_raw(raw: Union[str, dict[str, Any], None]) -> dict[str, Any] | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"Provider configuration is not valid JSON: {exc}"
        ) from exc
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigurationError("Provider configuration must be a JSON object")
    return data


def parse_provider_config(
    kind: BackendKind,
    raw: Union[str, dict[str, Any], None],
) -> Optional[ProviderConfig]:
    """Return the typed provider record for *kind*, or ``None``.

    ``None`` is returned when the kind takes no provider configuration or
    none was given.  Presence of the fields a provider needs is checked by
    the provider itself.
    """
    model = CONFIG_TYPES.get(kind)
    data = _load_raw(raw)
    if model is None or data is None:
        return None
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid {kind.value} configuration: {exc}"
        ) from exc


def provider_config_for(config: BackendConfig) -> Optional[ProviderConfig]:
    """Shortcut for :func:`parse_provider_config` on a backend."""
    return parse_provider_config(config.kind, config.provider_config)
