"""Service wiring shared by the route blueprints."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from flask import current_app

from changelog_i18n.config import (
    BASE_DIR,
    BATCH_DELAY_SECONDS,
    CONTENT_MAX_LENGTH,
    DEFAULT_TARGET_LANGUAGES,
    MAX_TRANSLATED_SECTIONS,
    QUERY_ENTRY_BATCH_SIZE,
    SYNC_ENTRY_BATCH_SIZE,
    TEXT_BATCH_SIZE,
)
from changelog_i18n.core.cache import TranslationCacheStore
from changelog_i18n.core.source import ChangelogRepository, ContentSource, create_content_source
from changelog_i18n.core.sync import SyncService
from changelog_i18n.logger import get_logger
from changelog_i18n.translation.client import TranslationClient
from changelog_i18n.translation.entries import EntryTranslator
from changelog_i18n.translation.orchestrator import CacheOrchestrator

EXTENSION_KEY = "changelog_i18n"

logger = get_logger(__name__)


@dataclass
class ChangelogServices:
    config: Dict[str, Any]
    store: TranslationCacheStore
    orchestrator: CacheOrchestrator
    repository: ChangelogRepository
    query_translator: EntryTranslator
    sync_service: SyncService


def build_services(
    config: Dict[str, Any],
    source: Optional[ContentSource] = None,
    ai_service=None,
    store: Optional[TranslationCacheStore] = None,
    base_dir: Optional[Path] = None,
    sleep=asyncio.sleep,
) -> ChangelogServices:
    """Create the store, translators, repository and sync service from configuration."""
    base_dir = base_dir or BASE_DIR
    translation_config = config.get("translation", {})
    sync_config = config.get("sync", {})
    changelog_config = config.get("changelog", {})

    if ai_service is None:
        from changelog_i18n.ai import AIService, TranslationError, validate_ai_config
        try:
            validate_ai_config(config)
        except TranslationError as e:
            logger.warning(f"AI provider is not configured, translations will fall back to source text: {e}")
        ai_service = AIService(config)

    store = store or TranslationCacheStore.from_config(config, base_dir=base_dir)
    batch_delay = translation_config.get("batch_delay_seconds", BATCH_DELAY_SECONDS)
    orchestrator = CacheOrchestrator(
        store,
        TranslationClient(ai_service),
        batch_size=translation_config.get("text_batch_size", TEXT_BATCH_SIZE),
        batch_delay=batch_delay,
        sleep=sleep,
    )

    source = source or create_content_source(config, base_dir=base_dir)
    repository = ChangelogRepository(
        source,
        cache_duration=changelog_config.get("cache_duration_seconds", 1800),
    )

    # Query responses translate every section title; syncs cap them.
    query_translator = EntryTranslator(
        orchestrator,
        content_max_length=translation_config.get("content_max_length", CONTENT_MAX_LENGTH),
        max_sections=None,
        entry_batch_size=changelog_config.get("entry_batch_size", QUERY_ENTRY_BATCH_SIZE),
        batch_delay=0,
        sleep=sleep,
    )
    sync_translator = EntryTranslator(
        orchestrator,
        content_max_length=translation_config.get("content_max_length", CONTENT_MAX_LENGTH),
        max_sections=translation_config.get("max_sections", MAX_TRANSLATED_SECTIONS),
        entry_batch_size=sync_config.get("entry_batch_size", SYNC_ENTRY_BATCH_SIZE),
        batch_delay=batch_delay,
        sleep=sleep,
    )
    sync_service = SyncService(
        source,
        sync_translator,
        min_interval=sync_config.get("min_interval_seconds", 600),
        recommended_interval=sync_config.get("recommended_interval_seconds", 3600),
        default_languages=translation_config.get("target_languages", DEFAULT_TARGET_LANGUAGES),
    )

    return ChangelogServices(
        config=config,
        store=store,
        orchestrator=orchestrator,
        repository=repository,
        query_translator=query_translator,
        sync_service=sync_service,
    )


def get_services() -> ChangelogServices:
    return current_app.extensions[EXTENSION_KEY]
