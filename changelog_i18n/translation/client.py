"""
Best-effort translation of one text into several languages.

The client never raises: every failure is turned into a fallback outcome that
echoes the source text for each requested language.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from changelog_i18n.logger import get_logger
from changelog_i18n.ai.exceptions import MalformedResponseError
from changelog_i18n.translation.utils import needs_translation, safe_parse_json_object

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"
STATUS_FALLBACK = "fallback"


@dataclass
class TranslationOutcome:
    """Translations for one text plus how they were obtained."""
    translations: Dict[str, str] = field(default_factory=dict)
    status: str = STATUS_OK
    reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.status == STATUS_FALLBACK


def _echo(text: str, languages: List[str]) -> Dict[str, str]:
    return {language: text for language in languages}


class TranslationClient:
    """Turns one source text into a {language: text} mapping via the AI service."""

    def __init__(self, ai_service):
        """
        Args:
            ai_service: Object with `build_translation_prompt(text, languages)`
                and `async complete(prompt) -> str`
        """
        self.ai_service = ai_service

    @staticmethod
    def needs_translation(text) -> bool:
        return needs_translation(text)

    async def translate_outcome(self, text: str, languages: List[str]) -> TranslationOutcome:
        if not self.needs_translation(text):
            return TranslationOutcome(_echo(text, languages), STATUS_SKIPPED, "not translatable")

        try:
            prompt = self.ai_service.build_translation_prompt(text, languages)
            response_text = await self.ai_service.complete(prompt)

            parsed = safe_parse_json_object(response_text)
            if parsed is None:
                raise MalformedResponseError("Response is not a JSON object", raw_text=response_text or "")

            translations = {}
            for language in languages:
                value = parsed.get(language)
                if isinstance(value, str) and value.strip():
                    translations[language] = value
                else:
                    logger.warning(f"No {language} translation in response, keeping source text")
                    translations[language] = text

            return TranslationOutcome(translations, STATUS_OK)

        except Exception as e:
            logger.error(f"Translation failed, falling back to source text: {e}")
            return TranslationOutcome(_echo(text, languages), STATUS_FALLBACK, str(e))

    async def translate(self, text: str, languages: List[str]) -> Dict[str, str]:
        outcome = await self.translate_outcome(text, languages)
        return outcome.translations
