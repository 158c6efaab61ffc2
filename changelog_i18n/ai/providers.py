"""
AI Provider API Implementations

Async API calls for each AI provider. All supported providers speak the
OpenAI chat-completions format:
- OpenAI
- DeepSeek
- Gemini (OpenAI-compatible endpoint)
- Custom providers (OpenAI-compatible)

Each function takes an AIService instance and a prompt, returns the text response.
"""

from typing import Any, Dict
import httpx

from changelog_i18n.logger import get_logger
from changelog_i18n.config import PROVIDER_DEFAULTS
from changelog_i18n.ai.exceptions import EmptyResponseError, TranslationError

logger = get_logger(__name__)

PLACEHOLDER_API_KEY = "YOUR_API_KEY_HERE"


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    timeout_value = float(timeout_config) if timeout_config else 120.0
    return httpx.Timeout(connect=10.0, write=60.0, read=timeout_value, pool=10.0)


def handle_http_error(e: httpx.HTTPStatusError, provider: str):
    """Raise a TranslationError carrying the provider's error message."""
    status_code = e.response.status_code
    error_text = "Unknown error"

    try:
        error_json = e.response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                error_text = error_detail.get("message", str(error_detail))
            else:
                error_text = str(error_detail)
    except ValueError:
        error_text = e.response.text[:500] if e.response.text else "No details"

    raise TranslationError(
        f"{provider} API error ({status_code}): {error_text}",
        code="http_error",
        details={"provider": provider, "status_code": status_code},
    )


async def _post_chat_completion(service, provider_label: str, provider_config: Dict[str, Any],
                                api_url: str, model: str, prompt: str) -> str:
    headers = {
        "Authorization": f"Bearer {provider_config['api_key']}",
        "Content-Type": "application/json"
    }
    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": service.get_system_message()},
            {"role": "user", "content": prompt},
        ],
        "temperature": service.temperature,
        "max_tokens": service.max_tokens,
    }

    logger.debug(f"  Calling {provider_label} API (model: {model})...")

    timeout = get_httpx_timeout(provider_config.get('timeout', PROVIDER_DEFAULTS['timeout']))

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(api_url, headers=headers, json=body)
            response.raise_for_status()
            result = response.json()
    except httpx.HTTPStatusError as e:
        handle_http_error(e, provider_label)
    except httpx.TimeoutException:
        raise TranslationError(f"{provider_label} API request timeout", code="timeout")
    except (httpx.HTTPError, ValueError) as e:
        raise TranslationError(f"{provider_label} API call failed: {e}", code="transport_error")

    usage = result.get('usage') or {}
    service.record_token_usage(usage.get('prompt_tokens', 0), usage.get('completion_tokens', 0))

    choices = result.get('choices') or []
    content = choices[0].get('message', {}).get('content') if choices else None
    if not content:
        raise EmptyResponseError(provider_label)

    logger.debug(f"  Received {len(content)} chars from {provider_label} (tokens: {service.get_last_token_usage()})")
    return content


def _require_api_key(provider_label: str, provider_config: Dict[str, Any]):
    api_key = provider_config.get('api_key', '')
    if not api_key or api_key == PLACEHOLDER_API_KEY:
        raise TranslationError(f"{provider_label} API key not configured", code="ai_config_missing")


async def call_openai_api_text(service, prompt: str) -> str:
    """Call OpenAI API and return the text response."""
    provider_config = service.config.get('openai', {})
    _require_api_key("OpenAI", provider_config)
    model = service.get_model(provider_config, 'gpt-4o-mini')
    api_url = provider_config.get('api_url', 'https://api.openai.com/v1/chat/completions')
    return await _post_chat_completion(service, "OpenAI", provider_config, api_url, model, prompt)


async def call_deepseek_api_text(service, prompt: str) -> str:
    """Call DeepSeek API and return the text response."""
    provider_config = service.config.get('deepseek', {})
    _require_api_key("DeepSeek", provider_config)
    model = service.get_model(provider_config, 'deepseek-chat')
    api_url = provider_config.get('api_url', 'https://api.deepseek.com/chat/completions')
    return await _post_chat_completion(service, "DeepSeek", provider_config, api_url, model, prompt)


async def call_gemini_api_text(service, prompt: str) -> str:
    """Call Gemini through its OpenAI-compatible endpoint."""
    provider_config = service.config.get('gemini', {})
    _require_api_key("Gemini", provider_config)
    model = service.get_model(provider_config, 'gemini-2.5-flash')
    api_url = provider_config.get(
        'api_url', 'https://generativelanguage.googleapis.com/v1beta/openai/chat/completions'
    )
    return await _post_chat_completion(service, "Gemini", provider_config, api_url, model, prompt)


async def call_custom_provider_api_text(service, prompt: str) -> str:
    """Call custom provider API using OpenAI-compatible format."""
    provider = service.provider
    provider_config = service.config.get(provider, {})
    label = f"Custom provider '{provider}'"
    _require_api_key(label, provider_config)

    api_url = provider_config.get('api_url', '')
    if not api_url:
        raise TranslationError(f"{label} API URL not configured", code="ai_config_missing")

    model = service.get_model(provider_config, '')
    if not model:
        raise TranslationError(f"{label} model not configured", code="ai_config_missing")

    return await _post_chat_completion(service, label, provider_config, api_url, model, prompt)
