"""
Language codes served by the changelog site.

Codes are ISO 639-1 (2-letter). The source changelog is published in English;
every other supported code is a translation target.
"""

from typing import Dict, Iterable, List, Optional

SOURCE_LANGUAGE = 'en'

# Display names used inside translation prompts
LANGUAGE_NAMES = {
    'en': 'English',
    'ko': 'Korean',
    'ja': 'Japanese',
    'zh': 'Chinese (Simplified)',
    'es': 'Spanish',
}

# Translation targets
SUPPORTED_LANGUAGES = {
    'ko': '한국어',
    'ja': '日本語',
    'zh': '中文',
    'es': 'Español',
}


def extract_base_language(code: str) -> str:
    """
    Extract the base language from a regional code.

    Examples:
        'zh-CN' -> 'zh'
        'es_MX' -> 'es'
        'ko' -> 'ko'
    """
    if not code:
        return ''
    return code.replace('_', '-').split('-')[0].lower()


def is_supported_language(code: str) -> bool:
    """Check whether a code is a supported translation target."""
    return isinstance(code, str) and code in SUPPORTED_LANGUAGES


def get_language_name(code: str) -> Optional[str]:
    """Get the English display name for a language code (None if unknown)."""
    if not code:
        return None
    return LANGUAGE_NAMES.get(code) or LANGUAGE_NAMES.get(extract_base_language(code))


def filter_supported_languages(codes: Iterable) -> List[str]:
    """Keep supported codes in request order, dropping duplicates and invalid values."""
    result: List[str] = []
    for code in codes or []:
        if not isinstance(code, str):
            continue
        code = code.strip()
        if is_supported_language(code) and code not in result:
            result.append(code)
    return result


def get_supported_languages() -> Dict[str, str]:
    return dict(SUPPORTED_LANGUAGES)
