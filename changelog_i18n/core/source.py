"""
Changelog content sources.

This module handles where changelog entries come from:
- ContentSource adapters (JSON snapshot file, JSON document over HTTP)
- ChangelogRepository, an in-memory last-known-good snapshot with expiry
"""

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx

from changelog_i18n.ai.providers import get_httpx_timeout
from changelog_i18n.logger import get_logger
from changelog_i18n.models import ChangelogEntry, entries_from_json

logger = get_logger(__name__)

DEFAULT_CACHE_DURATION_SECONDS = 30 * 60


class SourceUnavailableError(Exception):
    """The content source failed and no snapshot is available."""


@dataclass
class ParseOptions:
    include_images: bool = True
    include_videos: bool = True
    generate_detailed_sections: bool = True


def apply_parse_options(entries: List[ChangelogEntry], options: ParseOptions) -> List[ChangelogEntry]:
    """Drop media and sections the caller did not ask for."""
    result = []
    for entry in entries:
        changes: Dict[str, Any] = {}
        if not options.include_images:
            changes['images'] = []
        if not options.include_videos:
            changes['videos'] = []
        if not options.generate_detailed_sections:
            changes['sections'] = []
        result.append(replace(entry, **changes) if changes else entry)
    return result


def parse_entries_document(data: Any) -> List[ChangelogEntry]:
    """
    Accept either a bare list of entries or {"entries": [...]}.

    Raises:
        ValueError: If the document has neither shape or an entry lacks an id
    """
    if isinstance(data, dict):
        data = data.get('entries')
    if not isinstance(data, list):
        raise ValueError("Changelog document must be a list of entries or an object with an 'entries' list")
    try:
        return entries_from_json(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid changelog entry: {e}") from e


class ContentSource(ABC):
    """Produces the current list of changelog entries."""

    @abstractmethod
    async def fetch_entries(self, options: Optional[ParseOptions] = None) -> List[ChangelogEntry]:
        ...


class JsonFileContentSource(ContentSource):
    """Reads entries from a JSON snapshot file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def fetch_entries(self, options: Optional[ParseOptions] = None) -> List[ChangelogEntry]:
        logger.info(f"Loading changelog snapshot: {self.path}")
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        entries = parse_entries_document(data)
        logger.info(f"Loaded {len(entries)} changelog entries")
        return apply_parse_options(entries, options or ParseOptions())


class HttpJsonContentSource(ContentSource):
    """Fetches entries from a JSON document served over HTTP."""

    def __init__(self, url: str, timeout: Any = 30):
        self.url = url
        self.timeout = timeout

    async def fetch_entries(self, options: Optional[ParseOptions] = None) -> List[ChangelogEntry]:
        logger.info(f"Fetching changelog from {self.url}")
        async with httpx.AsyncClient(timeout=get_httpx_timeout(self.timeout)) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            data = response.json()
        entries = parse_entries_document(data)
        logger.info(f"Fetched {len(entries)} changelog entries")
        return apply_parse_options(entries, options or ParseOptions())


def create_content_source(config: Dict[str, Any], base_dir: Optional[Path] = None) -> ContentSource:
    """Build the source named by config['changelog']['source'] ("file" or "http")."""
    changelog_config = config.get('changelog', {})
    source_type = changelog_config.get('source', 'file')

    if source_type == 'http':
        url = changelog_config.get('source_url', '')
        if not url:
            raise ValueError("changelog.source_url must be set for the http source")
        return HttpJsonContentSource(url, timeout=changelog_config.get('timeout', 30))

    if source_type == 'file':
        path = Path(changelog_config.get('source_path', 'data/changelog.json'))
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return JsonFileContentSource(path)

    raise ValueError(f"Unknown changelog source: {source_type}")


class ChangelogRepository:
    """
    Last-known-good snapshot of the changelog.

    A snapshot younger than cache_duration is served as is. Otherwise the
    source is asked again; if that fails the stale snapshot is served, and
    only when there has never been a snapshot does the failure propagate.
    """

    def __init__(
        self,
        source: ContentSource,
        cache_duration: float = DEFAULT_CACHE_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.cache_duration = cache_duration
        self.clock = clock
        self._entries: Optional[List[ChangelogEntry]] = None
        self._fetched_at = 0.0

    @property
    def has_snapshot(self) -> bool:
        return self._entries is not None

    def cache_age(self) -> int:
        """Milliseconds since the snapshot was taken."""
        return int((self.clock() - self._fetched_at) * 1000)

    async def get_entries(self, options: Optional[ParseOptions] = None) -> List[ChangelogEntry]:
        now = self.clock()
        if self._entries is not None and now - self._fetched_at < self.cache_duration:
            logger.debug("Serving cached changelog snapshot")
            return self._entries

        try:
            entries = await self.source.fetch_entries(options or ParseOptions())
        except Exception as e:
            logger.error(f"Failed to fetch changelog: {e}")
            if self._entries is not None:
                logger.warning("Serving stale changelog snapshot after fetch failure")
                return self._entries
            raise SourceUnavailableError(f"Changelog source unavailable: {e}") from e

        self._entries = entries
        self._fetched_at = now
        return entries
