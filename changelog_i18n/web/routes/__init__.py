"""Route blueprints for the web application."""

from .cache import cache_bp
from .changelog import changelog_bp
from .sync import sync_bp

__all__ = [
    "cache_bp",
    "changelog_bp",
    "sync_bp",
]
