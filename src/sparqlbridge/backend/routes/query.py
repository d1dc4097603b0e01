"""Query routes: /api/query."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

query_bp = Blueprint("query", __name__)


@query_bp.route("", methods=["POST"])
def execute_query():
    """Forward a SPARQL query to a registered backend.

    Body: ``{"query": "...", "backend_id": "..."}``.
    """
    data = request.get_json(force=True, silent=True) or {}
    query = data.get("query", "")
    backend_id = data.get("backend_id") or data.get("backendId", "")

    if not query or not backend_id:
        return jsonify({"error": "Missing 'query' or 'backend_id'"}), 400

    gateway = current_app.config["GATEWAY"]
    result = gateway.execute_query(query, backend_id)
    return jsonify(result.model_dump(by_alias=True, mode="json"))
