"""Backend routes: /api/backends/*."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

backends_bp = Blueprint("backends", __name__)


@backends_bp.route("/", methods=["GET"])
def list_backends():
    """List registered backends. Credentials are never included."""
    gateway = current_app.config["GATEWAY"]
    backends = [
        b.model_dump(by_alias=True, mode="json")
        for b in gateway.registry.list_backends()
    ]
    return jsonify({"backends": backends})


@backends_bp.route("/<backend_id>/validate", methods=["POST"])
def validate_backend(backend_id: str):
    gateway = current_app.config["GATEWAY"]
    result = gateway.validate_backend(backend_id)
    return jsonify(result.model_dump(by_alias=True, mode="json"))
