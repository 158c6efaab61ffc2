"""Changelog sync API routes."""

from __future__ import annotations

import hmac
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Blueprint, jsonify, request

from changelog_i18n.logger import get_logger
import changelog_i18n.language_codes as lc

from ..services import get_services

sync_bp = Blueprint("sync", __name__)
logger = get_logger(__name__)


def _verify_auth() -> bool:
    """Bearer token check; every caller is allowed when no sync token is configured."""
    sync_token = get_services().config.get("sync", {}).get("token", "")
    if not sync_token:
        return True

    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return False
    return hmac.compare_digest(auth_header[len("Bearer "):], sync_token)


def _unauthorized():
    return jsonify({"error": "Unauthorized", "message": "Valid authorization token required"}), 401


@sync_bp.before_request
def require_token():
    if request.method == "OPTIONS":
        return None
    if not _verify_auth():
        logger.warning("Rejected sync request with missing or invalid token")
        return _unauthorized()
    return None


@sync_bp.post("")
async def trigger_sync():
    """Run a sync for the requested languages unless the last one is too recent."""
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    sync_service = get_services().sync_service
    languages = data.get("languages", sync_service.default_languages)
    force = bool(data.get("force", False))

    valid_languages = lc.filter_supported_languages(languages if isinstance(languages, list) else [])
    if not valid_languages:
        return jsonify({
            "error": "Invalid languages",
            "supportedLanguages": list(lc.get_supported_languages()),
            "message": "At least one valid language must be specified",
        }), 400

    throttle = sync_service.throttle_info(force=force)
    if throttle is not None:
        logger.info("Sync skipped, last sync %ss ago", throttle["timeSinceLastSync"])
        return jsonify({"success": False, "message": "Sync skipped - too recent", **throttle}), 429

    try:
        result = await sync_service.perform_sync(valid_languages)
    except Exception as exc:
        logger.exception("Sync request failed")
        return jsonify({
            "success": False,
            "error": "Internal server error",
            "message": str(exc),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), 500

    return jsonify(result.to_dict()), 200 if result.success else 500


@sync_bp.get("")
def sync_status():
    """Last sync time, counts, and the next recommended sync."""
    status = get_services().sync_service.status(list(lc.get_supported_languages()))
    return jsonify(status)
