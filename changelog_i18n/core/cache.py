"""
Hash-keyed translation cache.

The cache is a single JSON document:

    {
        "version": "1.0",
        "entries": {"<hash>": {"originalText": ..., "hash": ..., "translations": {...},
                               "createdAt": ..., "updatedAt": ...}},
        "metadata": {"totalEntries": 0, "lastUpdated": "..."}
    }

Every read loads the whole file and every mutation rewrites it. There is no
locking: concurrent writers lose updates (last write wins), so one process owns
the cache file.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from changelog_i18n.config import CACHE_VERSION, DEFAULT_CACHE_MAX_AGE_DAYS
from changelog_i18n.logger import get_logger

logger = get_logger(__name__)

HASH_LENGTH = 16
DEFAULT_CACHE_DIR = ".translation-cache"
DEFAULT_CACHE_FILE_NAME = "translations.json"
DEFAULT_MAX_AGE = timedelta(days=DEFAULT_CACHE_MAX_AGE_DAYS)


def generate_text_hash(text: str) -> str:
    """SHA-256 of the trimmed text, truncated to 16 hex characters."""
    return hashlib.sha256(text.strip().encode('utf-8')).hexdigest()[:HASH_LENGTH]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (TypeError, ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_size(size_bytes: int) -> str:
    """Human-readable file size (B, KB, MB)."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


@dataclass
class TranslationCacheEntry:
    """Cached translations for one source text."""
    original_text: str
    hash: str
    translations: Dict[str, str]
    created_at: str
    updated_at: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranslationCacheEntry":
        return cls(
            original_text=data.get('originalText', ''),
            hash=data.get('hash', ''),
            translations=dict(data.get('translations') or {}),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'originalText': self.original_text,
            'hash': self.hash,
            'translations': self.translations,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


@dataclass
class CacheLookup:
    """Result of a batch lookup, correlated to the input position."""
    text: str
    cached: Optional[TranslationCacheEntry]
    index: int


@dataclass
class CacheStats:
    total_entries: int
    cache_size: str
    oldest_entry: Optional[str] = None
    newest_entry: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalEntries': self.total_entries,
            'cacheSize': self.cache_size,
            'oldestEntry': self.oldest_entry,
            'newestEntry': self.newest_entry,
        }


def create_empty_cache(now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        'version': CACHE_VERSION,
        'entries': {},
        'metadata': {
            'totalEntries': 0,
            'lastUpdated': (now or utc_now()).isoformat(),
        },
    }


class TranslationCacheStore:
    """File-backed translation cache keyed by text hash."""

    def __init__(
        self,
        cache_dir: Path = Path(DEFAULT_CACHE_DIR),
        cache_file_name: str = DEFAULT_CACHE_FILE_NAME,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            cache_dir: Directory holding the cache file (created on first write)
            cache_file_name: Cache file name inside cache_dir
            max_age: Entries older than this (by creation time) are treated as missing
            clock: Returns the current UTC time
        """
        self.cache_dir = Path(cache_dir)
        self.cache_file_name = cache_file_name
        self.max_age = max_age
        self.clock = clock

    @classmethod
    def from_config(cls, config: Dict[str, Any], base_dir: Optional[Path] = None) -> "TranslationCacheStore":
        cache_config = config.get('cache', {})
        cache_dir = Path(cache_config.get('cache_dir', DEFAULT_CACHE_DIR))
        if base_dir is not None and not cache_dir.is_absolute():
            cache_dir = base_dir / cache_dir
        return cls(
            cache_dir=cache_dir,
            cache_file_name=cache_config.get('cache_file_name', DEFAULT_CACHE_FILE_NAME),
            max_age=timedelta(days=cache_config.get('max_age_days', DEFAULT_CACHE_MAX_AGE_DAYS)),
        )

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / self.cache_file_name

    # ------------------------------------------------------------
    # Whole-document I/O
    # ------------------------------------------------------------

    def load(self) -> Dict[str, Any]:
        """
        Load the full cache document.

        A missing, unreadable or version-mismatched file yields a fresh empty cache.
        """
        if not self.cache_file.exists():
            return create_empty_cache(self.clock())

        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                cache = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load translation cache {self.cache_file}: {e}")
            return create_empty_cache(self.clock())

        if (not isinstance(cache, dict) or not isinstance(cache.get('entries'), dict)
                or not all(isinstance(raw, dict) for raw in cache['entries'].values())):
            logger.error(f"Translation cache {self.cache_file} has an invalid layout, starting fresh")
            return create_empty_cache(self.clock())

        if cache.get('version') != CACHE_VERSION:
            logger.info(
                f"Translation cache version {cache.get('version')!r} != {CACHE_VERSION!r}, starting fresh"
            )
            return create_empty_cache(self.clock())

        cache.setdefault('metadata', {})
        return cache

    def save(self, cache: Dict[str, Any]) -> None:
        """Rewrite the whole cache file. Write failures propagate."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache['metadata'] = {
                'totalEntries': len(cache['entries']),
                'lastUpdated': self.clock().isoformat(),
            }
            with open(self.cache_file, 'w', encoding='utf-8') as f:
                json.dump(cache, f, indent=2, ensure_ascii=False)
            logger.debug(f"Translation cache saved: {self.cache_file}")
        except OSError as e:
            logger.error(f"Failed to save translation cache {self.cache_file}: {e}")
            raise

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------

    def _is_expired(self, entry: TranslationCacheEntry, now: datetime) -> bool:
        created_at = _parse_timestamp(entry.created_at)
        if created_at is None:
            return True
        return now - created_at > self.max_age

    def _lookup(self, cache: Dict[str, Any], text: str, now: datetime) -> Optional[TranslationCacheEntry]:
        text_hash = generate_text_hash(text)
        raw = cache['entries'].get(text_hash)
        if not raw:
            return None

        entry = TranslationCacheEntry.from_dict(raw)
        if entry.original_text != text.strip():
            logger.warning(f"Hash collision detected: {text_hash}")
            return None

        if self._is_expired(entry, now):
            logger.debug(f"Cache entry expired: {text_hash}")
            return None

        return entry

    def get(self, text: str) -> Optional[TranslationCacheEntry]:
        """Return the cached entry for a text, or None on miss, collision or expiry."""
        return self._lookup(self.load(), text, self.clock())

    def get_batch(self, texts: List[str]) -> List[CacheLookup]:
        """Look up several texts, preserving input order and index."""
        cache = self.load()
        now = self.clock()
        return [
            CacheLookup(text=text, cached=self._lookup(cache, text, now), index=index)
            for index, text in enumerate(texts)
        ]

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------

    def _upsert(self, cache: Dict[str, Any], text: str, translations: Dict[str, str], now_iso: str) -> None:
        text_hash = generate_text_hash(text)
        existing = cache['entries'].get(text_hash) or {}
        entry = TranslationCacheEntry(
            original_text=text.strip(),
            hash=text_hash,
            translations=dict(translations),
            created_at=existing.get('createdAt') or now_iso,
            updated_at=now_iso,
        )
        cache['entries'][text_hash] = entry.to_dict()

    def set(self, text: str, translations: Dict[str, str]) -> None:
        """Upsert one entry (createdAt is kept for an existing hash) and persist."""
        cache = self.load()
        self._upsert(cache, text, translations, self.clock().isoformat())
        self.save(cache)

    def set_batch(self, items: Iterable[Tuple[str, Dict[str, str]]]) -> None:
        """Upsert several (text, translations) pairs with a single rewrite."""
        items = list(items)
        if not items:
            return
        cache = self.load()
        now_iso = self.clock().isoformat()
        for text, translations in items:
            self._upsert(cache, text, translations, now_iso)
        self.save(cache)

    def remove(self, text: str) -> bool:
        """Delete the entry for one text. Returns True when something was removed."""
        cache = self.load()
        text_hash = generate_text_hash(text)
        if text_hash not in cache['entries']:
            return False
        del cache['entries'][text_hash]
        self.save(cache)
        logger.info(f"Removed cache entry: {text_hash}")
        return True

    def clean_expired(self) -> int:
        """Drop entries older than max_age. Returns the number removed."""
        cache = self.load()
        now = self.clock()
        expired = [
            text_hash
            for text_hash, raw in cache['entries'].items()
            if self._is_expired(TranslationCacheEntry.from_dict(raw), now)
        ]
        for text_hash in expired:
            del cache['entries'][text_hash]

        if expired:
            self.save(cache)
            logger.info(f"Cleaned {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        """Delete the cache file. Missing file is not an error."""
        try:
            self.cache_file.unlink()
            logger.info("Translation cache cleared")
        except FileNotFoundError:
            pass

    def stats(self) -> CacheStats:
        cache = self.load()
        created = [
            parsed
            for parsed in (_parse_timestamp(raw.get('createdAt', '')) for raw in cache['entries'].values())
            if parsed is not None
        ]

        size = "0 B"
        try:
            if self.cache_file.exists():
                size = format_size(self.cache_file.stat().st_size)
        except OSError as e:
            logger.error(f"Failed to read cache file size: {e}")

        return CacheStats(
            total_entries=len(cache['entries']),
            cache_size=size,
            oldest_entry=min(created).isoformat() if created else None,
            newest_entry=max(created).isoformat() if created else None,
        )
