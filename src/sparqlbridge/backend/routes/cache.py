"""Ontology cache routes: /api/cache/*."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from sparqlbridge.backend.app import status_for
from sparqlbridge.errors import GatewayError
from sparqlbridge.models import CacheProgress, SearchOptions

cache_bp = Blueprint("cache", __name__)

_ELEMENT_TYPES = ("class", "property", "individual")


def _gateway():
    return current_app.config["GATEWAY"]


def _dump(model):
    return model.model_dump(by_alias=True, mode="json")


@cache_bp.route("/", methods=["GET"])
def list_cached():
    return jsonify({"backendIds": _gateway().list_cached_backend_ids()})


@cache_bp.route("/", methods=["DELETE"])
def clear_all():
    _gateway().clear_all_caches()
    return jsonify({"cleared": True})


@cache_bp.route("/<backend_id>", methods=["GET"])
def get_cache(backend_id: str):
    cache = _gateway().read_cache(backend_id)
    if cache is None:
        return jsonify({"error": f"No cache for backend: {backend_id}"}), 404
    return jsonify(_dump(cache))


@cache_bp.route("/<backend_id>", methods=["DELETE"])
def delete_cache(backend_id: str):
    if not _gateway().invalidate_cache(backend_id):
        return jsonify({"error": f"No cache for backend: {backend_id}"}), 404
    return jsonify({"cleared": backend_id})


@cache_bp.route("/<backend_id>/refresh", methods=["POST"])
def refresh(backend_id: str):
    """Rebuild and store a cache, reporting every progress event."""
    events: list[CacheProgress] = []
    try:
        cache = _gateway().refresh_cache(backend_id, events.append)
    except GatewayError as exc:
        return jsonify({
            "error": str(exc),
            "progress": [_dump(e) for e in events],
        }), status_for(exc)
    return jsonify({
        "metadata": _dump(cache.metadata),
        "progress": [_dump(e) for e in events],
    })


@cache_bp.route("/<backend_id>/smart-refresh", methods=["POST"])
def smart_refresh(backend_id: str):
    result = _gateway().smart_refresh(backend_id)
    return jsonify(_dump(result))


@cache_bp.route("/<backend_id>/validation", methods=["GET"])
def validation(backend_id: str):
    return jsonify(_dump(_gateway().validate_cache_freshness(backend_id)))


@cache_bp.route("/<backend_id>/search", methods=["POST"])
def search(backend_id: str):
    """Body: ``{"query": "...", "types": [...], "limit": 50, ...}``."""
    data = request.get_json(force=True, silent=True) or {}
    try:
        options = SearchOptions.model_validate(data)
    except ValidationError as exc:
        return jsonify({"error": f"Invalid search options: {exc}"}), 400
    results = _gateway().search_cached_elements(backend_id, options)
    return jsonify({"results": [_dump(r) for r in results]})


@cache_bp.route("/<backend_id>/element", methods=["GET"])
def get_element(backend_id: str):
    iri = request.args.get("iri", "")
    element_type = request.args.get("type") or None
    if not iri:
        return jsonify({"error": "Missing 'iri'"}), 400
    if element_type is not None and element_type not in _ELEMENT_TYPES:
        return jsonify({"error": f"Unknown element type: {element_type}"}), 400

    element = _gateway().get_cached_element(backend_id, iri, element_type)
    if element is None:
        return jsonify({"error": f"Element not found: {iri}"}), 404
    return jsonify(_dump(element))


@cache_bp.route("/<backend_id>/test-query", methods=["POST"])
def test_query(backend_id: str):
    data = request.get_json(force=True, silent=True) or {}
    query = data.get("query", "")
    if not query:
        return jsonify({"error": "Missing 'query'"}), 400
    result = _gateway().test_cache_query(backend_id, query)
    return jsonify(_dump(result))
