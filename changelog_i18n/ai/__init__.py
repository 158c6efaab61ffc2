"""
AI Module

This module provides the LLM transport used for translation.
"""

from changelog_i18n.ai.exceptions import TranslationError
from changelog_i18n.ai.service import AIService, validate_ai_config

__all__ = ['TranslationError', 'AIService', 'validate_ai_config']
