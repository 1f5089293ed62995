"""Configuration paths and limits for CodeQA."""

from __future__ import annotations

import os

from .config_manager import BASE_DIR, CONFIG_FILE, load_config, load_ingest_config

HISTORY_FILE = BASE_DIR / "history.json"

_toml_config = load_config()
_ingest_config = load_ingest_config()


def _int_setting(key: str, env_key: str, default: int) -> int:
    raw = os.environ.get(env_key, _ingest_config.get(key, default))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


# LLM provider configuration, loaded from ~/.codeqa/config.toml (set via `cq config set-llm`)
LLM_PROVIDER = _toml_config.get("provider", "groq")
LLM_API_KEY = _toml_config.get("api_key", "")
LLM_MODEL = _toml_config.get("model", "llama-3.3-70b-versatile")
LLM_ENDPOINT = _toml_config.get("endpoint", "")

# Ingestion and context limits
MAX_FILE_CHARS = _int_setting("max_file_chars", "CODEQA_MAX_FILE_CHARS", 500_000)
CONTEXT_MAX_CHARS = _int_setting("context_max_chars", "CODEQA_CONTEXT_MAX_CHARS", 40_000)
MAX_REMOTE_FILES = _int_setting("max_remote_files", "CODEQA_MAX_REMOTE_FILES", 150)
FETCH_BATCH_SIZE = _int_setting("fetch_batch_size", "CODEQA_FETCH_BATCH_SIZE", 10)
MANIFEST_LIMIT = _int_setting("manifest_limit", "CODEQA_MANIFEST_LIMIT", 80)
MAX_HISTORY = 10

GITHUB_API_BASE = os.environ.get("CODEQA_GITHUB_API", "https://api.github.com")
GITHUB_RAW_BASE = os.environ.get("CODEQA_GITHUB_RAW", "https://raw.githubusercontent.com")
