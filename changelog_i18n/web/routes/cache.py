"""Translation cache maintenance routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from changelog_i18n.logger import get_logger

from ..services import get_services

cache_bp = Blueprint("cache", __name__)
logger = get_logger(__name__)


@cache_bp.get("")
def cache_info():
    """Cache statistics and configuration."""
    return jsonify({"success": True, "data": get_services().orchestrator.cache_info()})


@cache_bp.post("/clean")
def clean_cache():
    """Drop expired entries."""
    try:
        removed = get_services().store.clean_expired()
    except OSError as exc:
        logger.exception("Failed cleaning translation cache")
        return jsonify({"success": False, "error": str(exc)}), 500
    return jsonify({"success": True, "removed": removed})


@cache_bp.delete("")
def clear_cache():
    """Delete the whole cache file."""
    try:
        get_services().store.clear()
    except OSError as exc:
        logger.exception("Failed clearing translation cache")
        return jsonify({"success": False, "error": str(exc)}), 500
    return jsonify({"success": True})
