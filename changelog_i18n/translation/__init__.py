"""
Translation module - Core translation functionality

This module provides:
- TranslationClient: One text into several languages, never raises
- CacheOrchestrator: Cache-aware, batched translation of text lists
- EntryTranslator: Field-level translation of changelog entries
- Batch scheduling and text filtering utilities
"""

from changelog_i18n.translation.client import TranslationClient, TranslationOutcome
from changelog_i18n.translation.scheduler import BatchResult, make_batches, run_in_batches
from changelog_i18n.translation.orchestrator import (
    CacheOrchestrator,
    BatchTranslationResult,
    CacheHitStats,
    ChangeTranslationResult,
    SingleTranslationResult,
)
from changelog_i18n.translation.entries import EntryTranslator, EntryBatchTranslation
from changelog_i18n.translation.utils import needs_translation, extract_translatable_texts
