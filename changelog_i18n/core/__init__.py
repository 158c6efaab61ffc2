"""
Core module - Change detection, caching and synchronization

This module provides:
- cache: Hash-keyed translation cache file
- changes: Recursive change detection between nested snapshots
- differ: New/updated/deleted/unchanged comparison of changelog entries
- source: Content sources and the in-memory changelog snapshot
- sync: Change-aware translation sync
"""

from changelog_i18n.core.cache import (
    CacheLookup,
    CacheStats,
    TranslationCacheEntry,
    TranslationCacheStore,
    generate_text_hash,
)
from changelog_i18n.core.changes import (
    Leaf,
    ListValue,
    Node,
    detect_change_tree,
    detect_changes,
)
from changelog_i18n.core.differ import (
    CacheComparisonResult,
    CompareOptions,
    UpdatedEntry,
    VersionStatus,
    compare_changelog_cache,
    export_comparison,
    format_comparison_summary,
    get_changed_entries,
    get_changes_for_version,
    has_changes,
    has_content_changed,
)
