"""
Translation utility functions for text filtering, change extraction, and JSON extraction.
"""

import json
import re
from typing import List, Dict, Any, Tuple, Optional

_URL_PATTERN = re.compile(r'^https?://')
_EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_NUMBER_PATTERN = re.compile(r'^\d+(\.\d+)?$')

MIN_TRANSLATABLE_LENGTH = 3


def needs_translation(text: Any) -> bool:
    """
    Decide whether a value is worth sending to the translator.

    Non-strings, blank strings, URLs, bare e-mail addresses, bare numbers
    and strings of two characters or fewer are left as they are.

    Example:
        >>> needs_translation("https://example.com")
        False
        >>> needs_translation("New dashboard")
        True
    """
    if not isinstance(text, str):
        return False

    trimmed = text.strip()
    if not trimmed:
        return False

    if _URL_PATTERN.match(trimmed) or _EMAIL_PATTERN.match(trimmed) or _NUMBER_PATTERN.match(trimmed):
        return False

    return len(trimmed) >= MIN_TRANSLATABLE_LENGTH


def extract_translatable_texts(obj: Any, path: str = "",
                               pairs: Optional[List[Tuple[str, str]]] = None) -> List[Tuple[str, str]]:
    """
    Collect (key_path, text) pairs for every string that needs translation.

    Args:
        obj: Change mapping (flat or nested)
        path: Current key path
        pairs: Accumulator list (created if None)

    Returns:
        List of (key_path, text) tuples; list items use "key[index]" paths

    Example:
        >>> extract_translatable_texts({"notes": ["Fixed login", "42"]})
        [("notes[0]", "Fixed login")]
    """
    if pairs is None:
        pairs = []

    if isinstance(obj, dict):
        for key, value in obj.items():
            new_path = f"{path}.{key}" if path else str(key)
            extract_translatable_texts(value, new_path, pairs)
    elif isinstance(obj, (list, tuple)):
        for index, item in enumerate(obj):
            extract_translatable_texts(item, f"{path}[{index}]", pairs)
    elif needs_translation(obj):
        pairs.append((path, obj))

    return pairs


def match_json_object(text: str) -> Optional[str]:
    """
    Extract JSON object from mixed text using bracket matching.

    Args:
        text: Text potentially containing JSON object

    Returns:
        Extracted JSON object string, or None if not found
    """
    if not text:
        return None

    stack = []
    start = -1
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue

        if char == '\\':
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == '{':
            if not stack:
                start = i
            stack.append('{')
        elif char == '}':
            if stack:
                stack.pop()
                if not stack and start >= 0:
                    return text[start:i+1]

    return None


def _strip_code_fence(text: str) -> str:
    lines = text.split('\n')
    if lines[0].startswith('```'):
        lines = lines[1:]
    if lines and lines[-1].strip() == '```':
        lines = lines[:-1]
    return '\n'.join(lines).strip()


def safe_parse_json_object(text: str) -> Optional[Dict]:
    """
    Safely parse JSON object from potentially malformed text.

    Tries multiple strategies:
    1. Direct parse
    2. Remove markdown code blocks and parse
    3. Extract with bracket matching and parse

    Args:
        text: Text to parse

    Returns:
        Parsed dict or None on failure
    """
    if not text:
        return None

    text = text.strip()
    candidates = [text]
    if text.startswith('```'):
        candidates.append(_strip_code_fence(text))
    extracted = match_json_object(text)
    if extracted:
        candidates.append(extracted)

    for candidate in candidates:
        try:
            result = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(result, dict):
            return result

    return None
