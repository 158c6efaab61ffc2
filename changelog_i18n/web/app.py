"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from datetime import datetime, timezone

from flask import Flask, jsonify, request

from changelog_i18n.logger import get_logger

from .routes.cache import cache_bp
from .routes.changelog import changelog_bp
from .routes.sync import sync_bp
from .services import EXTENSION_KEY, ChangelogServices

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def build_app(services: ChangelogServices) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False
    app.json.sort_keys = False

    app.extensions[EXTENSION_KEY] = services

    @app.after_request
    def add_cors_headers(response):
        """Allow cross-origin calls from the changelog front end."""
        if request.path.startswith("/api/"):
            response.headers.update(CORS_HEADERS)
        return response

    register_blueprints(app)
    register_default_routes(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(changelog_bp, url_prefix="/api/changelog")
    app.register_blueprint(sync_bp, url_prefix="/api/sync")
    app.register_blueprint(cache_bp, url_prefix="/api/cache")


def register_default_routes(app: Flask) -> None:
    """Register health and error routes."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({"success": False, "error": "Not Found", "message": str(e)}), 404

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({
            "success": False,
            "error": "Internal Server Error",
            "message": "Unknown error occurred",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), 500
