import copy
import json
import os
from pathlib import Path
from typing import Dict, Any, Optional

# Translation configuration constants
DEFAULT_SYSTEM_MESSAGE = "You are a professional translator. Return only valid JSON."
DEFAULT_TARGET_LANGUAGES = ["ko", "ja", "zh", "es"]

# Provider configuration constants
BUILTIN_PROVIDERS = ["openai", "deepseek", "gemini"]

BUILTIN_PROVIDER_DISPLAY_NAMES = {
    "openai": "OpenAI",
    "deepseek": "DeepSeek",
    "gemini": "Gemini"
}

PROVIDER_DEFAULTS = {
    "timeout": 120
}

# Cache and batching constants
CACHE_VERSION = "1.0"
DEFAULT_CACHE_MAX_AGE_DAYS = 7
TEXT_BATCH_SIZE = 5          # texts per concurrent batch in the orchestrator
SYNC_ENTRY_BATCH_SIZE = 2    # entries per batch during a sync
QUERY_ENTRY_BATCH_SIZE = 3   # entries per batch when serving a query
BATCH_DELAY_SECONDS = 1.0
CONTENT_MAX_LENGTH = 1000
MAX_TRANSLATED_SECTIONS = 5

# Get base directory (project root)
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = BASE_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "config.json"
CONFIG_ENV_VAR = "CHANGELOG_I18N_CONFIG"

# Default prompts
DEFAULT_PROMPTS = {
    "multi_language_prompt": {
        "version": "1.0",
        "description": "Single text to several target languages, answered as a JSON object",
        "prompt": """Translate the following text into {language_names}.
Provide an accurate and natural translation for each language and answer in JSON.

Text to translate: "{text}"

Response format (use exactly these language codes as keys):
{response_shape}

Do not include explanations, markdown code blocks, or any text outside the JSON object. Return ONLY the JSON object."""
    }
}

# Default configuration templates
DEFAULT_CONFIG = {
    "ai_provider": "openai",
    "openai": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["gpt-4o-mini", "gpt-4o"],  # Up to 5 models, first is default
        "timeout": 120,
        "api_url": "https://api.openai.com/v1/chat/completions"
    },
    "deepseek": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["deepseek-chat"],
        "timeout": 120,
        "api_url": "https://api.deepseek.com/chat/completions"
    },
    "gemini": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["gemini-2.5-flash"],
        "timeout": 120,
        "api_url": "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions"
    },
    "translation": {
        "target_languages": DEFAULT_TARGET_LANGUAGES,
        "temperature": 0.3,
        "max_tokens": 1000,
        "text_batch_size": TEXT_BATCH_SIZE,
        "batch_delay_seconds": BATCH_DELAY_SECONDS,
        "content_max_length": CONTENT_MAX_LENGTH,
        "max_sections": MAX_TRANSLATED_SECTIONS
    },
    "cache": {
        "cache_dir": ".translation-cache",
        "cache_file_name": "translations.json",
        "max_age_days": DEFAULT_CACHE_MAX_AGE_DAYS
    },
    "sync": {
        "token": "",
        "min_interval_seconds": 600,
        "recommended_interval_seconds": 3600,
        "entry_batch_size": SYNC_ENTRY_BATCH_SIZE
    },
    "changelog": {
        "source": "file",
        "source_path": "data/changelog.json",
        "source_url": "",
        "cache_duration_seconds": 1800,
        "entry_batch_size": QUERY_ENTRY_BATCH_SIZE,
        "dates_per_page": 10
    },
    "log_mode": "info"
}


def get_config_file() -> Path:
    """Return the config file path, honouring the environment override."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else CONFIG_FILE


def _merge_defaults(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_environment(config: Dict[str, Any]) -> Dict[str, Any]:
    api_key = os.environ.get("OPENAI_API_KEY")
    if api_key:
        config.setdefault("openai", {})["api_key"] = api_key
    sync_token = os.environ.get("SYNC_TOKEN")
    if sync_token:
        config.setdefault("sync", {})["token"] = sync_token
    return config


def ensure_config_directory(config_file: Optional[Path] = None):
    """Ensure the config directory exists."""
    config_file = config_file or get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)


def create_default_config(config_file: Optional[Path] = None):
    """Create the default config.json file."""
    config_file = config_file or get_config_file()
    ensure_config_directory(config_file)
    with open(config_file, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)
    _logger().info(f"Created default config file: {config_file}")


def initialize_app(config_file: Optional[Path] = None):
    """
    Initialize the application.
    Writes the default configuration on first run.
    """
    config_file = config_file or get_config_file()
    logger = _logger()
    logger.info("Initializing application...")
    if not config_file.exists():
        try:
            create_default_config(config_file)
        except OSError as e:
            logger.error(f"Failed to create default config: {e}")
            logger.warning("Application will use in-memory default configuration")
    logger.info("Application initialization complete")


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the configuration file merged over the defaults."""
    config_file = config_file or get_config_file()
    if not config_file.exists():
        return _apply_environment(copy.deepcopy(DEFAULT_CONFIG))

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            stored = json.load(f)
        if not isinstance(stored, dict):
            raise ValueError(f"Config must contain a JSON object, got {type(stored).__name__}")
        return _apply_environment(_merge_defaults(DEFAULT_CONFIG, stored))
    except (json.JSONDecodeError, ValueError) as e:
        _logger().error(f"Failed to parse config file {config_file}: {e}")
        _logger().warning("Using default configuration")
    except OSError as e:
        _logger().error(f"Failed to read config file {config_file}: {e}")
        _logger().warning("Using default configuration")
    return _apply_environment(copy.deepcopy(DEFAULT_CONFIG))


def save_config(config: Dict[str, Any], config_file: Optional[Path] = None):
    """Save the configuration file."""
    config_file = config_file or get_config_file()
    try:
        ensure_config_directory(config_file)
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4, ensure_ascii=False)
        _logger().info("Configuration saved")
    except OSError as e:
        _logger().error(f"Failed to save config: {e}")
        raise
    from changelog_i18n.logger import clear_log_mode_cache
    clear_log_mode_cache()


def load_prompts() -> Dict[str, Any]:
    """Load the prompts from default configuration.

    Note: Prompts are hardcoded in the codebase and are not stored in config.json.
    """
    return copy.deepcopy(DEFAULT_PROMPTS)


def get_prompt(prompt_name: str = "multi_language_prompt") -> Dict[str, Any]:
    """Get a specific prompt by name."""
    prompts = load_prompts()
    return prompts.get(prompt_name, DEFAULT_PROMPTS["multi_language_prompt"])


def _logger():
    # config is imported by logger, so the logger is resolved lazily
    from changelog_i18n.logger import get_logger
    return get_logger(__name__)
