"""Changelog query API routes."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from flask import Blueprint, jsonify, request

from changelog_i18n.core.source import SourceUnavailableError
from changelog_i18n.logger import get_logger
from changelog_i18n.models import ChangelogEntry, entries_to_json
import changelog_i18n.language_codes as lc

from ..services import get_services

changelog_bp = Blueprint("changelog", __name__)
logger = get_logger(__name__)

CACHE_CONTROL = "public, max-age=1800, stale-while-revalidate=3600"
MAX_LIMIT = 100
_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%Y-%m-%d")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_entry_date(value: str) -> Optional[datetime]:
    """Parse the date labels used by changelog entries; None when unrecognised."""
    value = (value or "").strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass
    for date_format in _DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format)
        except ValueError:
            continue
    return None


def group_by_date(entries: List[ChangelogEntry]) -> Dict[str, List[ChangelogEntry]]:
    grouped: Dict[str, List[ChangelogEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.date, []).append(entry)
    return grouped


def sort_dates_newest_first(dates) -> List[str]:
    """Newest first; labels that cannot be parsed go last in their original order."""
    parsed = [(date, parse_entry_date(date)) for date in dates]
    known = sorted((item for item in parsed if item[1] is not None), key=lambda item: item[1], reverse=True)
    unknown = [item for item in parsed if item[1] is None]
    return [date for date, _ in known + unknown]


def _unsupported_language(lang: str):
    supported = list(lc.get_supported_languages())
    return jsonify({
        "error": "Unsupported language",
        "supportedLanguages": supported,
        "message": f"Language '{lang}' is not supported. Supported languages: {', '.join(supported)}",
    }), 400


def _server_error(exc: Exception):
    return jsonify({
        "success": False,
        "error": "Internal Server Error",
        "message": str(exc) or "Unknown error occurred",
        "timestamp": _now_iso(),
    }), 500


def _cached_json(payload):
    response = jsonify(payload)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return response


@changelog_bp.get("")
async def get_changelog():
    """Entries, optionally filtered by version, limited, and translated."""
    lang = request.args.get("lang") or None
    limit_param = request.args.get("limit")
    version = request.args.get("version") or None

    if lang and not lc.is_supported_language(lang):
        return _unsupported_language(lang)

    services = get_services()
    try:
        entries = await services.repository.get_entries()
    except SourceUnavailableError as exc:
        logger.exception("Failed loading changelog entries")
        return _server_error(exc)

    if version:
        entries = [entry for entry in entries if entry.version == version]
        if not entries:
            return jsonify({
                "error": "Version not found",
                "message": f"No changelog entry found for version '{version}'",
            }), 404

    limit = _parse_int(limit_param)
    if limit is not None and 0 < limit <= MAX_LIMIT:
        entries = entries[:limit]

    translated = entries
    if lang:
        logger.info(f"Translating {len(entries)} entries into {lang}")
        try:
            translated = await services.query_translator.translate_entries(entries, lang)
        except OSError as exc:
            logger.exception("Failed writing translation cache")
            return _server_error(exc)

    return _cached_json({
        "success": True,
        "data": {
            "entries": entries_to_json(translated),
            "metadata": {
                "language": lang or lc.SOURCE_LANGUAGE,
                "total": len(translated),
                "originalTotal": len(entries),
                "version": version,
                "limit": limit,
                "generatedAt": _now_iso(),
                "cacheAge": services.repository.cache_age(),
            },
        },
    })


@changelog_bp.get("/paginated")
async def get_changelog_paginated():
    """Date buckets page by page, or the entries of one date."""
    lang = request.args.get("lang") or None
    page = max(_parse_int(request.args.get("page")) or 0, 0)
    target_date = request.args.get("date") or None

    if lang and not lc.is_supported_language(lang):
        return _unsupported_language(lang)

    services = get_services()
    try:
        all_entries = await services.repository.get_entries()
    except SourceUnavailableError as exc:
        logger.exception("Failed loading changelog entries")
        return _server_error(exc)

    grouped = group_by_date(all_entries)
    sorted_dates = sort_dates_newest_first(grouped.keys())
    metadata = {
        "language": lang or lc.SOURCE_LANGUAGE,
        "generatedAt": _now_iso(),
        "cacheAge": services.repository.cache_age(),
    }

    if target_date:
        entries_for_date = grouped.get(target_date, [])
        if not entries_for_date:
            return jsonify({
                "success": True,
                "data": {
                    "entries": [],
                    "pagination": {
                        "currentPage": page,
                        "totalPages": 0,
                        "totalDates": len(sorted_dates),
                        "currentDate": target_date,
                        "hasNext": False,
                        "hasPrev": False,
                    },
                    "metadata": metadata,
                },
            })

        translated = entries_for_date
        if lang:
            logger.info(f"Translating {len(entries_for_date)} entries for {target_date} into {lang}")
            try:
                translated = await services.query_translator.translate_entries(entries_for_date, lang)
            except OSError as exc:
                logger.exception("Failed writing translation cache")
                return _server_error(exc)

        index = sorted_dates.index(target_date)
        return _cached_json({
            "success": True,
            "data": {
                "entries": entries_to_json(translated),
                "pagination": {
                    "currentPage": page,
                    "totalPages": 1,
                    "totalDates": len(sorted_dates),
                    "currentDate": target_date,
                    "currentDateIndex": index,
                    "hasNext": index > 0,
                    "hasPrev": index < len(sorted_dates) - 1,
                    "nextDate": sorted_dates[index - 1] if index > 0 else None,
                    "prevDate": sorted_dates[index + 1] if index < len(sorted_dates) - 1 else None,
                },
                "metadata": metadata,
            },
        })

    per_page = services.config.get("changelog", {}).get("dates_per_page", 10)
    start = page * per_page
    page_dates = sorted_dates[start:start + per_page]
    total_pages = math.ceil(len(sorted_dates) / per_page)

    return _cached_json({
        "success": True,
        "data": {
            "dates": [{"date": date, "count": len(grouped[date])} for date in page_dates],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalDates": len(sorted_dates),
                "hasNext": page < total_pages - 1,
                "hasPrev": page > 0,
            },
            "metadata": metadata,
        },
    })
