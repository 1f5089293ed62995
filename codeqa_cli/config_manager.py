"""Configuration manager for CodeQA CLI using TOML files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import requests
import toml

BASE_DIR = Path(os.environ.get("CODEQA_HOME", str(Path.home() / ".codeqa"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"


# Default configurations for each provider
DEFAULT_CONFIGS = {
    "groq": {
        "provider": "groq",
        "model": "llama-3.3-70b-versatile",
        "api_key": "",
        "endpoint": "https://api.groq.com/openai/v1/chat/completions",
    },
    "openai": {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "api_key": "",
        "endpoint": "https://api.openai.com/v1/chat/completions",
    },
    "openrouter": {
        "provider": "openrouter",
        "model": "meta-llama/llama-3.3-70b-instruct:free",
        "api_key": "",
        "endpoint": "https://openrouter.ai/api/v1/chat/completions",
    },
}

ALL_PROVIDERS = list(DEFAULT_CONFIGS)


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError):
        return {}


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    try:
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError:
        return False


def load_config() -> Dict[str, Any]:
    """Load the ``[llm]`` section.

    Returns:
        Provider settings; Groq defaults when the file or section is missing.
    """
    llm = load_full_config().get("llm")
    if not isinstance(llm, dict):
        return DEFAULT_CONFIGS["groq"].copy()
    return llm


def save_config(provider: str, model: str, api_key: str = "", endpoint: str = "") -> bool:
    """Save LLM configuration, preserving the other sections.

    Args:
        provider: Provider name (groq, openai, openrouter)
        model: Model name
        api_key: API key for the provider
        endpoint: Custom chat-completions endpoint

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config()

    config["llm"] = {
        "provider": provider,
        "model": model,
    }
    if api_key:
        config["llm"]["api_key"] = api_key
    if endpoint:
        config["llm"]["endpoint"] = endpoint

    return _save_full_config(config)


def load_ingest_config() -> Dict[str, Any]:
    """Load ingestion limits from the ``[ingest]`` section."""
    ingest = load_full_config().get("ingest")
    return ingest if isinstance(ingest, dict) else {}


def load_settings() -> Dict[str, Any]:
    """Load the free-form ``[settings]`` section."""
    settings = load_full_config().get("settings")
    return settings if isinstance(settings, dict) else {}


def save_setting(key: str, value: Any) -> bool:
    """Set one key in ``[settings]``; ``None`` removes it."""
    config = load_full_config()
    settings = config.get("settings")
    if not isinstance(settings, dict):
        settings = {}
    if value is None:
        settings.pop(key, None)
    else:
        settings[key] = value
    config["settings"] = settings
    return _save_full_config(config)


def get_provider_config(provider: str) -> Dict[str, Any]:
    """Get default configuration for a specific provider."""
    return DEFAULT_CONFIGS.get(provider, DEFAULT_CONFIGS["groq"]).copy()


def validate_api_key(provider: str, api_key: str, model: str, endpoint: str = "") -> tuple[bool, str]:
    """Validate an API key by making a minimal chat-completions request.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not api_key:
        return False, "API key is required"
    if provider not in DEFAULT_CONFIGS and not endpoint:
        return False, f"Unknown provider: {provider}"

    url = endpoint or DEFAULT_CONFIGS[provider]["endpoint"]
    try:
        response = requests.post(
            url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            json={
                "model": model,
                "messages": [{"role": "user", "content": "test"}],
                "max_tokens": 5,
            },
            timeout=10,
        )
    except requests.RequestException as e:
        return False, str(e)

    if response.status_code == 401:
        return False, "Invalid API key"
    # 402 means valid key but no credits - still a valid key
    if response.status_code == 402:
        return True, "Valid (no credits)"
    if not response.ok:
        return False, f"HTTP error: {response.status_code}"
    return True, "Valid"
