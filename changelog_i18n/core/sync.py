"""
Changelog synchronization module.

This module handles syncing the published changelog with its translations:
- Fetching the current entries from the content source
- Detecting new, updated, and deleted entries against the last snapshot
- Translating changed entries and keeping the in-memory sync cache
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from changelog_i18n.config import DEFAULT_TARGET_LANGUAGES
from changelog_i18n.core.differ import CompareOptions, compare_changelog_cache
from changelog_i18n.core.source import ContentSource, ParseOptions
from changelog_i18n.logger import get_logger
from changelog_i18n.models import ChangelogEntry
from changelog_i18n.translation.entries import EntryTranslator

logger = get_logger(__name__)

DEFAULT_MIN_INTERVAL_SECONDS = 10 * 60
DEFAULT_RECOMMENDED_INTERVAL_SECONDS = 60 * 60


def iso_timestamp(epoch_seconds: float) -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix."""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class SyncCache:
    """Last synced snapshot and its translations. last_sync is epoch seconds, 0 = never."""
    entries: List[ChangelogEntry] = field(default_factory=list)
    translations: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)
    last_sync: float = 0.0


@dataclass
class SyncResult:
    """Container for synchronization results."""
    success: bool
    timestamp: str
    new_entries: int = 0
    updated_entries: int = 0
    deleted_entries: int = 0
    total_entries: int = 0
    translated_languages: List[str] = field(default_factory=list)
    language_status: Dict[str, Dict[str, int]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    duration: int = 0  # milliseconds

    def __str__(self):
        return (f"SyncResult(success={self.success}, new={self.new_entries}, "
                f"updated={self.updated_entries}, "
                f"deleted={self.deleted_entries}, "
                f"total={self.total_entries})")

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "success": self.success,
            "timestamp": self.timestamp,
            "newEntries": self.new_entries,
            "updatedEntries": self.updated_entries,
            "deletedEntries": self.deleted_entries,
            "totalEntries": self.total_entries,
            "translatedLanguages": self.translated_languages,
            "languageStatus": self.language_status,
            "duration": self.duration,
        }
        if self.errors:
            payload["errors"] = self.errors
        return payload


class SyncService:
    """Owns the sync cache and runs change-aware translation syncs."""

    def __init__(
        self,
        source: ContentSource,
        translator: EntryTranslator,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        recommended_interval: float = DEFAULT_RECOMMENDED_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
        default_languages: Optional[List[str]] = None,
    ):
        self.source = source
        self.translator = translator
        self.min_interval = min_interval
        self.recommended_interval = recommended_interval
        self.clock = clock
        self.default_languages = list(default_languages or DEFAULT_TARGET_LANGUAGES)
        self.cache = SyncCache()

    def seconds_since_last_sync(self) -> float:
        return self.clock() - self.cache.last_sync

    def throttle_info(self, force: bool = False) -> Optional[Dict[str, Any]]:
        """
        Details of why a sync must wait, or None when it may run now.

        A forced sync is never throttled.
        """
        elapsed = self.seconds_since_last_sync()
        if force or elapsed >= self.min_interval:
            return None
        return {
            "lastSync": iso_timestamp(self.cache.last_sync),
            "nextAllowedSync": iso_timestamp(self.cache.last_sync + self.min_interval),
            "timeSinceLastSync": round(elapsed),
        }

    async def perform_sync(self, languages: Optional[List[str]] = None) -> SyncResult:
        """
        Fetch entries, translate the new and updated ones, and replace the cache.

        The cache is only replaced when the whole sync succeeds.
        """
        languages = list(languages or self.default_languages)
        started = self.clock()
        logger.info(f"Starting changelog sync for languages: {', '.join(languages)}")

        try:
            entries = await self.source.fetch_entries(ParseOptions())
            logger.info(f"Fetched {len(entries)} changelog entries")

            comparison = compare_changelog_cache(self.cache.entries, entries, CompareOptions())
            logger.info(f"Sync analysis complete: {comparison}")

            to_translate = comparison.new_entries + [update.new_entry for update in comparison.updated_entries]
            translations = dict(self.cache.translations)
            for entry in comparison.deleted_entries:
                translations.pop(entry.id, None)

            errors: List[str] = []
            if to_translate:
                logger.info(f"Translating {len(to_translate)} entries into {', '.join(languages)}")
                batch = await self.translator.translate_entries_languages(to_translate, languages)
                translations.update(batch.translations)
                errors.extend(batch.errors)

            finished = self.clock()
            self.cache = SyncCache(entries=entries, translations=translations, last_sync=finished)

            result = SyncResult(
                success=True,
                timestamp=iso_timestamp(finished),
                new_entries=comparison.summary.new_count,
                updated_entries=comparison.summary.updated_count,
                deleted_entries=comparison.summary.deleted_count,
                total_entries=len(entries),
                translated_languages=languages,
                language_status=self._language_status(to_translate, translations, languages),
                errors=errors,
                duration=int((finished - started) * 1000),
            )
            logger.info(f"Sync complete: {result} in {result.duration}ms")
            return result

        except Exception as e:
            error_msg = f"Sync failed: {e}"
            logger.error(error_msg)
            finished = self.clock()
            return SyncResult(
                success=False,
                timestamp=iso_timestamp(finished),
                total_entries=len(self.cache.entries),
                translated_languages=languages,
                errors=[error_msg],
                duration=int((finished - started) * 1000),
            )

    @staticmethod
    def _language_status(
        translated_entries: List[ChangelogEntry],
        translations: Dict[str, Dict[str, Dict[str, Any]]],
        languages: List[str],
    ) -> Dict[str, Dict[str, int]]:
        status = {}
        for language in languages:
            succeeded = sum(
                1 for entry in translated_entries
                if translations.get(entry.id, {}).get(language)
            )
            status[language] = {
                "translated": succeeded,
                "failed": len(translated_entries) - succeeded,
            }
        return status

    def get_translation(self, entry_id: str, language: str) -> Dict[str, Any]:
        return self.cache.translations.get(entry_id, {}).get(language, {})

    def status(self, supported_languages: List[str]) -> Dict[str, Any]:
        last_sync = self.cache.last_sync
        return {
            "lastSync": iso_timestamp(last_sync) if last_sync > 0 else None,
            "timeSinceLastSync": round(self.seconds_since_last_sync()),
            "nextRecommendedSync": iso_timestamp(last_sync + self.recommended_interval),
            "totalEntries": len(self.cache.entries),
            "translatedEntries": len(self.cache.translations),
            "supportedLanguages": supported_languages,
            "status": "ready",
        }
