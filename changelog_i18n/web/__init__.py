"""Web application package for changelog-i18n."""

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask

from changelog_i18n.config import initialize_app, load_config


def create_app(
    config: Optional[Dict[str, Any]] = None,
    source=None,
    ai_service=None,
    store=None,
    base_dir: Optional[Path] = None,
) -> Flask:
    """
    Application factory for the changelog API.

    Args:
        config: Configuration dict (config/config.json is used when omitted)
        source: ContentSource override (defaults to the configured source)
        ai_service: Translation backend override (defaults to AIService)
        store: TranslationCacheStore override
        base_dir: Root for relative cache and snapshot paths
    """
    if config is None:
        initialize_app()
        config = load_config()

    from .app import build_app  # Import here to avoid circular imports
    from .services import build_services

    services = build_services(config, source=source, ai_service=ai_service, store=store, base_dir=base_dir)
    return build_app(services)


__all__ = ["create_app"]
