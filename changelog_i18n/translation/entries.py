"""
Changelog entry translation.

Translates the user-visible fields of an entry (title, content, and the first
few section titles) through the cache orchestrator, for one or several
languages, and for lists of entries in rate-limited batches.
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from changelog_i18n.config import (
    BATCH_DELAY_SECONDS,
    CONTENT_MAX_LENGTH,
    MAX_TRANSLATED_SECTIONS,
    SYNC_ENTRY_BATCH_SIZE,
)
from changelog_i18n.logger import get_logger
from changelog_i18n.models import ChangelogEntry
from changelog_i18n.translation.orchestrator import CacheOrchestrator
from changelog_i18n.translation.scheduler import run_in_batches

logger = get_logger(__name__)

TITLE = "title"
CONTENT = "content"


@dataclass
class EntryBatchTranslation:
    """Per-entry, per-language partial translations of a list of entries."""
    translations: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)


class EntryTranslator:
    """
    Field-level translation of changelog entries.

    max_sections=None translates every section title.
    """

    def __init__(
        self,
        orchestrator: CacheOrchestrator,
        content_max_length: int = CONTENT_MAX_LENGTH,
        max_sections: Optional[int] = MAX_TRANSLATED_SECTIONS,
        entry_batch_size: int = SYNC_ENTRY_BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.content_max_length = content_max_length
        self.max_sections = max_sections
        self.entry_batch_size = entry_batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    def truncate_content(self, content: str) -> str:
        if len(content) > self.content_max_length:
            return content[:self.content_max_length] + "..."
        return content

    def _translatable_fields(self, entry: ChangelogEntry) -> List[Tuple[Any, str]]:
        """(field, text) pairs in translation order; blank fields are skipped."""
        fields: List[Tuple[Any, str]] = []
        if entry.title and entry.title.strip():
            fields.append((TITLE, entry.title))
        if entry.content and entry.content.strip():
            fields.append((CONTENT, self.truncate_content(entry.content)))
        for index, section in enumerate(entry.sections[:self.max_sections]):
            if section.title and section.title.strip():
                fields.append((index, section.title))
        return fields

    async def _translate_fields(self, entry: ChangelogEntry, languages: List[str]) -> Dict[str, Dict[Any, str]]:
        fields = self._translatable_fields(entry)
        by_language: Dict[str, Dict[Any, str]] = {language: {} for language in languages}
        if not fields:
            return by_language

        result = await self.orchestrator.translate_texts([text for _, text in fields], languages)
        if result.errors:
            logger.warning(f"Entry {entry.id}: {len(result.errors)} translation batches fell back to source text")

        for (field_key, text), translations in zip(fields, result.translations):
            for language in languages:
                by_language[language][field_key] = translations.get(language, text)
        return by_language

    @staticmethod
    def _apply(entry: ChangelogEntry, translated: Dict[Any, str]) -> ChangelogEntry:
        sections = [
            replace(section, title=translated[index]) if index in translated else section
            for index, section in enumerate(entry.sections)
        ]
        return entry.copy_with(
            title=translated.get(TITLE, entry.title),
            content=translated.get(CONTENT, entry.content),
            sections=sections,
        )

    @staticmethod
    def _partial(entry: ChangelogEntry, translated: Dict[Any, str]) -> Dict[str, Any]:
        partial: Dict[str, Any] = {}
        if TITLE in translated:
            partial["title"] = translated[TITLE]
        if CONTENT in translated:
            partial["content"] = translated[CONTENT]
        if any(isinstance(key, int) for key in translated):
            partial["sections"] = [
                {**section.to_dict(), "title": translated.get(index, section.title)}
                for index, section in enumerate(entry.sections)
            ]
        return partial

    async def translate_entry(self, entry: ChangelogEntry, language: str) -> ChangelogEntry:
        """Translated copy of entry; the original is returned on any failure except a cache write failure."""
        try:
            translated = await self._translate_fields(entry, [language])
            return self._apply(entry, translated[language])
        except OSError:
            raise
        except Exception as e:
            logger.error(f"Failed to translate entry {entry.id} to {language}: {e}")
            return entry

    async def translate_entry_languages(self, entry: ChangelogEntry, languages: List[str]) -> Dict[str, Dict[str, Any]]:
        """
        Partial translated fields per language; every language maps to {} on failure.

        Cache write failures (OSError) are not absorbed here.
        """
        try:
            translated = await self._translate_fields(entry, languages)
            return {language: self._partial(entry, translated[language]) for language in languages}
        except OSError:
            raise
        except Exception as e:
            logger.error(f"Failed to translate entry {entry.id}: {e}")
            return {language: {} for language in languages}

    async def translate_entries(
        self,
        entries: List[ChangelogEntry],
        language: str,
        batch_size: Optional[int] = None,
    ) -> List[ChangelogEntry]:
        """Translate entries batch by batch; a failed batch keeps its source entries."""
        batches = await run_in_batches(
            entries,
            lambda entry: self.translate_entry(entry, language),
            batch_size=batch_size or self.entry_batch_size,
            delay=self.batch_delay,
            sleep=self.sleep,
            label=f"Entry batch ({language})",
            reraise=(OSError,),
        )

        translated: List[ChangelogEntry] = []
        for batch in batches:
            translated.extend(batch.items if batch.failed else batch.results)
        return translated

    async def translate_entries_languages(
        self,
        entries: List[ChangelogEntry],
        languages: List[str],
        batch_size: Optional[int] = None,
    ) -> EntryBatchTranslation:
        result = EntryBatchTranslation()
        batches = await run_in_batches(
            entries,
            lambda entry: self.translate_entry_languages(entry, languages),
            batch_size=batch_size or self.entry_batch_size,
            delay=self.batch_delay,
            sleep=self.sleep,
            label="Entry batch",
            reraise=(OSError,),
        )

        for batch in batches:
            if batch.failed:
                result.errors.append(f"Entry batch {batch.index + 1} failed: {batch.error}")
                continue
            for entry, per_language in zip(batch.items, batch.results):
                result.translations[entry.id] = per_language
                failed_languages = [language for language, partial in per_language.items() if not partial]
                if failed_languages and self._translatable_fields(entry):
                    result.errors.append(f"Entry {entry.id}: no translation for {', '.join(failed_languages)}")

        logger.info(f"Translated {len(result.translations)}/{len(entries)} entries into {', '.join(languages)}")
        return result
