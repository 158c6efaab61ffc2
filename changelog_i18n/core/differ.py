"""
Changelog snapshot comparison.

This module handles diffing a cached changelog snapshot against a fresh one:
- Detecting new, updated, deleted and unchanged entries (keyed by entry id)
- Field-level and positional list comparison for updated entries
- Summaries and JSON export of a comparison
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from changelog_i18n.logger import get_logger
from changelog_i18n.models import ChangelogEntry, MediaItem

logger = get_logger(__name__)

_LEADING_FLOAT = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')


@dataclass
class CompareOptions:
    include_content_changes: bool = True
    include_media_changes: bool = True
    prioritize_version_order: bool = False
    debug: bool = False


@dataclass
class UpdatedEntry:
    old_entry: ChangelogEntry
    new_entry: ChangelogEntry


@dataclass
class ComparisonSummary:
    total_cached: int = 0
    total_new: int = 0
    new_count: int = 0
    updated_count: int = 0
    deleted_count: int = 0
    unchanged_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalCached": self.total_cached,
            "totalNew": self.total_new,
            "newCount": self.new_count,
            "updatedCount": self.updated_count,
            "deletedCount": self.deleted_count,
            "unchangedCount": self.unchanged_count,
        }


@dataclass
class CacheComparisonResult:
    """Partitions of a comparison. Built per call, never persisted."""
    new_entries: List[ChangelogEntry] = field(default_factory=list)
    updated_entries: List[UpdatedEntry] = field(default_factory=list)
    deleted_entries: List[ChangelogEntry] = field(default_factory=list)
    unchanged_entries: List[ChangelogEntry] = field(default_factory=list)
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)

    def __str__(self):
        return (f"CacheComparisonResult(new={self.summary.new_count}, "
                f"updated={self.summary.updated_count}, "
                f"deleted={self.summary.deleted_count}, "
                f"unchanged={self.summary.unchanged_count})")


@dataclass
class VersionStatus:
    is_new: bool = False
    is_updated: bool = False
    is_deleted: bool = False
    entry: Optional[ChangelogEntry] = None
    old_entry: Optional[ChangelogEntry] = None


def parse_version_number(version: str) -> float:
    """Leading numeric value of a version label ("0.48.x" -> 0.48); 0 when there is none."""
    match = _LEADING_FLOAT.match(version or "")
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def _media_changed(old_items: List[MediaItem], new_items: List[MediaItem]) -> bool:
    if len(old_items) != len(new_items):
        return True
    for old_item, new_item in zip(old_items, new_items):
        if (old_item.src != new_item.src
                or old_item.alt != new_item.alt
                or old_item.caption != new_item.caption):
            return True
    return False


def has_content_changed(
    old_entry: ChangelogEntry,
    new_entry: ChangelogEntry,
    options: Optional[CompareOptions] = None,
) -> bool:
    """
    Decide whether an entry present in both snapshots changed.

    Lists (sections, images, videos) are compared by position, so a reorder
    counts as a change.
    """
    options = options or CompareOptions()

    if (old_entry.version != new_entry.version
            or old_entry.date != new_entry.date
            or old_entry.title != new_entry.title):
        return True

    if options.include_content_changes:
        if (old_entry.content != new_entry.content
                or old_entry.html_content != new_entry.html_content
                or old_entry.raw_html != new_entry.raw_html):
            return True

        if len(old_entry.sections) != len(new_entry.sections):
            return True

        for old_section, new_section in zip(old_entry.sections, new_entry.sections):
            if (old_section.title != new_section.title
                    or old_section.content != new_section.content
                    or old_section.level != new_section.level):
                return True

    if options.include_media_changes:
        if _media_changed(old_entry.images, new_entry.images):
            return True
        if _media_changed(old_entry.videos, new_entry.videos):
            return True

    return False


def compare_changelog_cache(
    cached_entries: List[ChangelogEntry],
    new_entries: List[ChangelogEntry],
    options: Optional[CompareOptions] = None,
) -> CacheComparisonResult:
    """
    Compare a cached snapshot with a new one.

    Args:
        cached_entries: Previous snapshot
        new_entries: Current snapshot
        options: Which field groups to compare and whether to sort by version

    Returns:
        CacheComparisonResult with new/updated/unchanged in new-snapshot order
        and deleted in cached-snapshot order
    """
    options = options or CompareOptions()

    if options.debug:
        logger.info(f"Comparing snapshots: cached={len(cached_entries)}, new={len(new_entries)}")

    result = CacheComparisonResult()
    result.summary.total_cached = len(cached_entries)
    result.summary.total_new = len(new_entries)

    cached_by_id = {entry.id: entry for entry in cached_entries}
    new_ids = {entry.id for entry in new_entries}

    for new_entry in new_entries:
        cached_entry = cached_by_id.get(new_entry.id)

        if cached_entry is None:
            result.new_entries.append(new_entry)
            if options.debug:
                logger.info(f"New entry: {new_entry.version} - {new_entry.title}")
        elif has_content_changed(cached_entry, new_entry, options):
            result.updated_entries.append(UpdatedEntry(old_entry=cached_entry, new_entry=new_entry))
            if options.debug:
                logger.info(f"Updated entry: {new_entry.version} - {new_entry.title}")
        else:
            result.unchanged_entries.append(new_entry)
            if options.debug:
                logger.debug(f"Unchanged entry: {new_entry.version} - {new_entry.title}")

    for cached_entry in cached_entries:
        if cached_entry.id not in new_ids:
            result.deleted_entries.append(cached_entry)
            if options.debug:
                logger.info(f"Deleted entry: {cached_entry.version} - {cached_entry.title}")

    result.summary.new_count = len(result.new_entries)
    result.summary.updated_count = len(result.updated_entries)
    result.summary.deleted_count = len(result.deleted_entries)
    result.summary.unchanged_count = len(result.unchanged_entries)

    if options.prioritize_version_order:
        result.new_entries.sort(key=lambda entry: parse_version_number(entry.version), reverse=True)
        result.updated_entries.sort(
            key=lambda update: parse_version_number(update.new_entry.version), reverse=True
        )

    if options.debug:
        logger.info(f"Comparison complete: {result}")

    return result


def has_changes(
    cached_entries: List[ChangelogEntry],
    new_entries: List[ChangelogEntry],
    options: Optional[CompareOptions] = None,
) -> bool:
    summary = compare_changelog_cache(cached_entries, new_entries, options).summary
    return summary.new_count > 0 or summary.updated_count > 0 or summary.deleted_count > 0


def get_changed_entries(
    cached_entries: List[ChangelogEntry],
    new_entries: List[ChangelogEntry],
    options: Optional[CompareOptions] = None,
) -> List[ChangelogEntry]:
    """New entries followed by the new side of updated entries."""
    comparison = compare_changelog_cache(cached_entries, new_entries, options)
    return comparison.new_entries + [update.new_entry for update in comparison.updated_entries]


def get_changes_for_version(result: CacheComparisonResult, version: str) -> VersionStatus:
    """Classify one version label; new wins over updated, updated over deleted."""
    for entry in result.new_entries:
        if entry.version == version:
            return VersionStatus(is_new=True, entry=entry)

    for update in result.updated_entries:
        if update.new_entry.version == version:
            return VersionStatus(is_updated=True, entry=update.new_entry, old_entry=update.old_entry)

    for entry in result.deleted_entries:
        if entry.version == version:
            return VersionStatus(is_deleted=True, entry=entry)

    return VersionStatus()


def format_comparison_summary(result: CacheComparisonResult) -> str:
    """Human-readable report of a comparison."""
    summary = result.summary
    lines = [
        "Changelog cache comparison",
        "=" * 50,
        f"Cached entries: {summary.total_cached}",
        f"Fetched entries: {summary.total_new}",
        "",
        f"New: {summary.new_count}",
    ]
    lines.extend(
        f"   {index}. {entry.version} - {entry.title} ({entry.date})"
        for index, entry in enumerate(result.new_entries, start=1)
    )
    lines.append(f"Updated: {summary.updated_count}")
    lines.extend(
        f"   {index}. {update.new_entry.version} - {update.new_entry.title}"
        for index, update in enumerate(result.updated_entries, start=1)
    )
    lines.append(f"Deleted: {summary.deleted_count}")
    lines.extend(
        f"   {index}. {entry.version} - {entry.title}"
        for index, entry in enumerate(result.deleted_entries, start=1)
    )
    lines.append(f"Unchanged: {summary.unchanged_count}")
    lines.append("=" * 50)
    return "\n".join(lines)


def _entry_ref(entry: ChangelogEntry) -> Dict[str, Any]:
    return {"id": entry.id, "version": entry.version, "title": entry.title, "date": entry.date}


def export_comparison(result: CacheComparisonResult, include_unchanged: bool = False) -> str:
    """Serialise a comparison to JSON for auditing."""
    changes: Dict[str, Any] = {
        "new": [_entry_ref(entry) for entry in result.new_entries],
        "updated": [
            {
                **_entry_ref(update.new_entry),
                "hasContentChange": update.old_entry.content != update.new_entry.content,
                "hasMediaChange": (
                    len(update.old_entry.images) != len(update.new_entry.images)
                    or len(update.old_entry.videos) != len(update.new_entry.videos)
                ),
            }
            for update in result.updated_entries
        ],
        "deleted": [_entry_ref(entry) for entry in result.deleted_entries],
    }
    if include_unchanged:
        changes["unchanged"] = [_entry_ref(entry) for entry in result.unchanged_entries]

    export_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": result.summary.to_dict(),
        "changes": changes,
    }
    return json.dumps(export_data, indent=2, ensure_ascii=False)
