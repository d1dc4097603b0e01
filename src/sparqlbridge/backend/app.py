"""Flask application factory for the sparqlbridge HTTP API."""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from sparqlbridge.backend.config import Config
from sparqlbridge.cache_store import OntologyCacheStore
from sparqlbridge.database import Database
from sparqlbridge.errors import (
    AuthenticationError,
    BackendNotFoundError,
    ConfigurationError,
    GatewayError,
    NetworkError,
    ParseError,
    SizeLimitError,
    TransportError,
)
from sparqlbridge.gateway import QueryGateway
from sparqlbridge.registry import (
    InMemoryBackendRegistry,
    InMemoryCredentialStore,
    load_backends_file,
)

logger = logging.getLogger(__name__)


def status_for(exc: GatewayError) -> int:
    """HTTP status a gateway error is reported with."""
    if isinstance(exc, BackendNotFoundError):
        return 404
    if isinstance(exc, (ConfigurationError, SizeLimitError)):
        return 400
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, NetworkError) and exc.timed_out:
        return 504
    if isinstance(exc, (TransportError, ParseError)):
        return 502
    cause = getattr(exc, "cause", None)
    if isinstance(cause, GatewayError):
        return status_for(cause)
    return 500


def register_error_handlers(app: Flask) -> None:
    """Register consistent JSON error handlers."""

    @app.errorhandler(GatewayError)
    def gateway_error(exc):
        status = status_for(exc)
        if status >= 500:
            app.logger.warning("Gateway error (%d): %s", status, exc)
        return jsonify({"error": str(exc)}), status

    @app.errorhandler(400)
    def bad_request(exc):
        return jsonify({"error": str(exc.description)}), 400

    @app.errorhandler(404)
    def not_found(exc):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(exc):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def unhandled(exc):
        app.logger.exception("Unhandled exception")
        return jsonify({"error": "Internal server error"}), 500


def create_app(
    config_class: type[Config] = Config,
    gateway: QueryGateway | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    config_class:
        Configuration class (default :class:`Config`).
    gateway:
        Pre-built gateway to serve; when omitted one is assembled from
        ``BACKENDS_FILE`` and ``DATABASE_PATH``.

    Returns
    -------
    Flask
        Configured Flask application.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # ── CORS ──────────────────────────────────────────────────────────
    CORS(app, resources={
        r"/api/*": {
            "origins": config_class.CORS_ORIGINS,
            "methods": ["GET", "POST", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        },
    })

    # ── Gateway ───────────────────────────────────────────────────────
    if gateway is None:
        registry = InMemoryBackendRegistry()
        credentials = InMemoryCredentialStore()
        if config_class.BACKENDS_FILE:
            load_backends_file(config_class.BACKENDS_FILE, registry, credentials)
        db = Database(config_class.DATABASE_PATH)
        gateway = QueryGateway(registry, credentials, OntologyCacheStore(db))
    app.config["GATEWAY"] = gateway
    app.config["DB"] = gateway.store.db

    @app.teardown_appcontext
    def _close_db(exc):
        gateway.store.db.close()

    # ── Blueprints ────────────────────────────────────────────────────
    from sparqlbridge.backend.routes.backends import backends_bp
    from sparqlbridge.backend.routes.cache import cache_bp
    from sparqlbridge.backend.routes.query import query_bp

    app.register_blueprint(query_bp, url_prefix="/api/query")
    app.register_blueprint(backends_bp, url_prefix="/api/backends")
    app.register_blueprint(cache_bp, url_prefix="/api/cache")

    # ── Error handlers ────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Health check ──────────────────────────────────────────────────
    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "ok",
            "backends": len(gateway.registry.list_backends()),
        })

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
