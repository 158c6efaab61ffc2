"""
AI Translation Service Module

This module provides the AI service used by the translation client:
- AIService class for prompt building and provider dispatch
- Configuration validation
- Token usage tracking

For provider-specific API implementations, see ai/providers.py
"""

import json
from typing import List, Dict, Any, Optional

from changelog_i18n.config import (
    load_config,
    get_prompt,
    BUILTIN_PROVIDERS,
    BUILTIN_PROVIDER_DISPLAY_NAMES,
    DEFAULT_SYSTEM_MESSAGE,
)
from changelog_i18n.logger import get_logger
from changelog_i18n import language_codes as lc
from changelog_i18n.ai.exceptions import TranslationError

logger = get_logger(__name__)


def _provider_display(provider: str) -> str:
    if provider in BUILTIN_PROVIDER_DISPLAY_NAMES:
        return BUILTIN_PROVIDER_DISPLAY_NAMES[provider]
    return provider.replace('-', ' ').title()


def validate_ai_config(config: Optional[Dict[str, Any]] = None, provider_override: Optional[str] = None) -> None:
    """
    Validate that AI provider configuration is properly set up.

    Args:
        config: Configuration to check (loaded from disk when omitted)
        provider_override: Optional provider to validate instead of the default.

    Raises:
        TranslationError: If configuration is invalid or missing, with code and details.
    """
    config = config if config is not None else load_config()
    provider = provider_override if provider_override else config.get('ai_provider', 'openai')

    provider_config = config.get(provider)
    if not provider_config or not isinstance(provider_config, dict):
        kind = "AI provider" if provider in BUILTIN_PROVIDERS else "Custom AI provider"
        raise TranslationError(
            f"{kind} '{provider}' configuration not found",
            code="ai_config_missing",
            details={"provider": provider}
        )

    api_key = provider_config.get('api_key', '')
    if not api_key or api_key == "YOUR_API_KEY_HERE":
        raise TranslationError(
            f"{_provider_display(provider)} API key not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "api_key"}
        )

    # Check for models array (new format) or model field (legacy)
    models = provider_config.get('models', [])
    valid_models = [m for m in models if m and isinstance(m, str)] if isinstance(models, list) else []
    if not valid_models and not provider_config.get('model', ''):
        raise TranslationError(
            f"{_provider_display(provider)} model not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "models"}
        )


class AIService:
    """AI service for translation."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        model_override: Optional[str] = None,
        provider_override: Optional[str] = None,
    ):
        self.config = config if config is not None else load_config()
        # Use provider_override if specified, otherwise use config default
        self.provider = provider_override if provider_override else self.config.get('ai_provider', 'openai')
        self.model_override = model_override
        self.translation_config = self.config.get('translation', {})
        self.temperature = self.translation_config.get('temperature', 0.3)
        self.max_tokens = self.translation_config.get('max_tokens', 1000)
        # Token usage tracking
        self._last_token_usage = {'prompt_tokens': 0, 'completion_tokens': 0}
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        if model_override or provider_override:
            logger.info(f"Initialized AI service with provider: {self.provider}, model override: {model_override}")
        else:
            logger.info(f"Initialized AI service with provider: {self.provider}")

    def get_model(self, provider_config: Dict[str, Any], default_model: str = "") -> str:
        """
        Get the model to use for translation.

        Priority:
        1. model_override (if set)
        2. First model from 'models' array
        3. 'model' field (legacy)
        4. default_model
        """
        if self.model_override:
            return self.model_override

        models = provider_config.get('models', [])
        if models and isinstance(models, list) and models[0]:
            return models[0]

        return provider_config.get('model', default_model)

    def get_system_message(self, default: str = DEFAULT_SYSTEM_MESSAGE) -> str:
        """Get system message from config or use default."""
        return self.translation_config.get('system_message', default)

    def record_token_usage(self, prompt_tokens: int, completion_tokens: int):
        """Store the last call's usage and add it to the running totals."""
        self._last_token_usage = {
            'prompt_tokens': prompt_tokens or 0,
            'completion_tokens': completion_tokens or 0,
        }
        self.total_prompt_tokens += self._last_token_usage['prompt_tokens']
        self.total_completion_tokens += self._last_token_usage['completion_tokens']

    def get_last_token_usage(self) -> Dict[str, int]:
        """Get token usage from the last API call."""
        return self._last_token_usage.copy()

    def get_total_token_usage(self) -> Dict[str, int]:
        """Get accumulated token usage."""
        return {
            'prompt_tokens': self.total_prompt_tokens,
            'completion_tokens': self.total_completion_tokens,
        }

    def build_translation_prompt(self, text: str, languages: List[str]) -> str:
        """Build the multi-language prompt using the configured template."""
        language_names = ", ".join(lc.get_language_name(code) or code for code in languages)
        response_shape = json.dumps(
            {code: f"{lc.get_language_name(code) or code} translation" for code in languages},
            ensure_ascii=False,
            indent=2,
        )
        prompt_template = get_prompt('multi_language_prompt')['prompt']
        return prompt_template.format(
            language_names=language_names,
            text=text,
            response_shape=response_shape,
        )

    async def complete(self, prompt: str) -> str:
        """
        Call the configured provider and return its raw text response.

        Raises:
            TranslationError: On configuration, transport or empty-response failures
        """
        from changelog_i18n.ai.providers import (
            call_gemini_api_text,
            call_openai_api_text,
            call_deepseek_api_text,
            call_custom_provider_api_text,
        )

        logger.debug(f"  Input to AI (prompt):\n{prompt}")

        if self.provider == 'gemini':
            response_text = await call_gemini_api_text(self, prompt)
        elif self.provider == 'openai':
            response_text = await call_openai_api_text(self, prompt)
        elif self.provider == 'deepseek':
            response_text = await call_deepseek_api_text(self, prompt)
        elif self.provider in self.config and isinstance(self.config.get(self.provider), dict):
            # Custom provider - use OpenAI-compatible API format
            response_text = await call_custom_provider_api_text(self, prompt)
        else:
            raise TranslationError(f"Unsupported AI provider: {self.provider}", code="ai_config_missing")

        logger.debug(f"  Output from AI (response):\n{response_text}")
        return response_text
