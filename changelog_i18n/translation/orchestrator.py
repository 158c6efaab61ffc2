"""
Cache-aware translation orchestration.

translate_texts() splits the request into cache hits and misses, translates the
misses in rate-limited batches, writes every miss result back with one cache
rewrite, and returns translations in input order with hit/miss statistics.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from changelog_i18n.config import BATCH_DELAY_SECONDS, TEXT_BATCH_SIZE
from changelog_i18n.core.cache import TranslationCacheStore
from changelog_i18n.core.changes import detect_changes
from changelog_i18n.logger import get_logger
from changelog_i18n.translation.client import TranslationClient
from changelog_i18n.translation.scheduler import run_in_batches
from changelog_i18n.translation.utils import extract_translatable_texts

logger = get_logger(__name__)


def format_hit_rate(hits: int, total: int) -> str:
    if total <= 0:
        return "0%"
    return f"{hits / total * 100:.1f}%"


@dataclass
class CacheHitStats:
    total_requested: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_rate: str = "0%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequested": self.total_requested,
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
            "cacheHitRate": self.cache_hit_rate,
        }


@dataclass
class BatchTranslationResult:
    translations: List[Dict[str, str]] = field(default_factory=list)
    stats: CacheHitStats = field(default_factory=CacheHitStats)
    errors: List[str] = field(default_factory=list)


@dataclass
class SingleTranslationResult:
    original_text: str
    translations: Dict[str, str]
    cached: bool


@dataclass
class ChangeTranslationResult:
    translations: Dict[str, Dict[str, str]] = field(default_factory=dict)
    stats: CacheHitStats = field(default_factory=CacheHitStats)
    errors: List[str] = field(default_factory=list)


class CacheOrchestrator:
    """Combines the translation cache with the translation client."""

    def __init__(
        self,
        store: TranslationCacheStore,
        client: TranslationClient,
        batch_size: int = TEXT_BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.store = store
        self.client = client
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    async def translate_texts(self, texts: List[str], languages: List[str]) -> BatchTranslationResult:
        """
        Translate texts into languages, reusing cached translations.

        A cached entry only counts as a hit when it holds every requested
        language; otherwise the text is translated again and the new
        translations are merged into the cached ones on write.
        """
        result = BatchTranslationResult(translations=[{} for _ in texts])
        result.stats.total_requested = len(texts)
        if not texts:
            return result

        misses = []
        partial: Dict[int, Dict[str, str]] = {}
        for lookup in self.store.get_batch(texts):
            cached = lookup.cached
            if cached is not None and all(language in cached.translations for language in languages):
                result.translations[lookup.index] = {
                    language: cached.translations[language] for language in languages
                }
            else:
                if cached is not None:
                    partial[lookup.index] = dict(cached.translations)
                misses.append(lookup)

        result.stats.cache_misses = len(misses)
        result.stats.cache_hits = len(texts) - len(misses)
        result.stats.cache_hit_rate = format_hit_rate(result.stats.cache_hits, len(texts))
        logger.info(
            f"Translation cache: {result.stats.cache_hits} hits, {result.stats.cache_misses} misses "
            f"({result.stats.cache_hit_rate})"
        )

        if not misses:
            return result

        async def translate_one(lookup):
            return await self.client.translate(lookup.text, languages)

        batches = await run_in_batches(
            misses,
            translate_one,
            batch_size=self.batch_size,
            delay=self.batch_delay,
            sleep=self.sleep,
            label="Translation batch",
        )

        to_store = []
        for batch in batches:
            if batch.failed:
                result.errors.append(f"Batch {batch.index + 1} failed: {batch.error}")
                translated = [{language: lookup.text for language in languages} for lookup in batch.items]
            else:
                translated = batch.results

            for lookup, translations in zip(batch.items, translated):
                result.translations[lookup.index] = translations
                merged = {**partial.get(lookup.index, {}), **translations}
                to_store.append((lookup.text, merged))

        self.store.set_batch(to_store)
        logger.info(f"Translated and cached {len(to_store)} texts")
        return result

    async def translate_single(self, text: str, languages: List[str]) -> SingleTranslationResult:
        result = await self.translate_texts([text], languages)
        return SingleTranslationResult(
            original_text=text,
            translations=result.translations[0],
            cached=result.stats.cache_hits > 0,
        )

    async def translate_changes(
        self,
        current: Mapping[str, Any],
        previous: Optional[Mapping[str, Any]] = None,
        languages: Optional[List[str]] = None,
    ) -> ChangeTranslationResult:
        """Translate only the strings that changed between two snapshots."""
        languages = languages or []
        removed = self.store.clean_expired()
        if removed:
            logger.info(f"Removed {removed} expired translations before change translation")

        changes = detect_changes(current, previous)
        pairs = extract_translatable_texts(changes)
        logger.info(f"Detected {len(changes)} changed keys, {len(pairs)} translatable texts")

        if not pairs:
            return ChangeTranslationResult()

        batch = await self.translate_texts([text for _, text in pairs], languages)
        return ChangeTranslationResult(
            translations={key: translations for (key, _), translations in zip(pairs, batch.translations)},
            stats=batch.stats,
            errors=batch.errors,
        )

    def cache_info(self) -> Dict[str, Any]:
        """Cache statistics plus the store configuration."""
        max_age_days = self.store.max_age.total_seconds() / 86400
        return {
            **self.store.stats().to_dict(),
            "cacheDir": str(self.store.cache_dir),
            "cacheFileName": self.store.cache_file_name,
            "maxAge": int(self.store.max_age.total_seconds() * 1000),
            "maxAgeDisplay": f"{max_age_days:g} days",
        }
