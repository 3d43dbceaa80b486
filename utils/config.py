"""
Configuration module for Syllabus Engine
Handles API key lookup, provider/model selection and generation limits
"""

import os
from typing import Optional, Dict
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Constants
APP_NAME = "Syllabus Engine"

# Provider settings
DEFAULT_PROVIDER = "openai"
SUPPORTED_PROVIDERS = ["openai", "openrouter"]

# Environment variable holding the credential for each provider
API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}

# Model configurations per provider, one entry per request intent
PROVIDER_MODELS = {
    "openai": {
        "structure": "gpt-4o-mini",
        "lesson": "gpt-4o-mini",
        "lesson_deep": "gpt-4o",
        "graph": "gpt-4o-mini",
        "exam": "gpt-4o",
        "speech": "gpt-4o-mini-tts",
        "speech_voice": "alloy",
        "chat": "gpt-4o-mini",
        "base_url": None,  # Use default OpenAI base URL
    },
    "openrouter": {
        "structure": "google/gemini-2.5-flash",
        "lesson": "google/gemini-2.5-flash",
        "lesson_deep": "google/gemini-2.5-pro",
        "graph": "google/gemini-2.5-flash",
        "exam": "google/gemini-2.5-pro",
        "chat": "google/gemini-2.5-flash",
        "base_url": "https://openrouter.ai/api/v1",
    }
}

# Retry settings for external calls
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds

# Generation limits
SPEECH_CHAR_LIMIT = 500
CHAT_CONTEXT_CHAR_LIMIT = 5000
CHAT_HISTORY_LIMIT = 40  # most recent messages resent per turn; None sends everything
EXAM_QUESTION_COUNT = 5
JSON_REPAIR_ATTEMPTS = 1  # 0 rejects anything that is not plain JSON

# Audio transport
AUDIO_SAMPLE_RATE = 24000

# Knowledge graph viewport
GRAPH_WIDTH = 800
GRAPH_HEIGHT = 400

# App Attribution settings for OpenRouter
APP_URL = "https://github.com/syllabus-engine/syllabus-engine"

# In-memory overrides set from the UI, shared by every browser tab of this
# process until it restarts; nothing is written to disk
_runtime: Dict[str, str] = {}


def save_api_key(api_key: str, provider: str = DEFAULT_PROVIDER):
    """Keep an API key for a provider for the rest of this process"""
    _runtime[f"{provider}_api_key"] = api_key

    # If this is the first provider being configured, make it current
    if "provider" not in _runtime:
        _runtime["provider"] = provider


def load_api_key(provider: str = None) -> Optional[str]:
    """Load API key for a provider from memory or the environment"""
    if provider is None:
        provider = get_current_provider()

    api_key = _runtime.get(f"{provider}_api_key")
    if not api_key:
        env_var = API_KEY_ENV_VARS.get(provider)
        api_key = os.getenv(env_var) if env_var else None

    return api_key or None


def clear_api_key(provider: str = None):
    """Forget an API key entered in the UI"""
    if provider is None:
        provider = get_current_provider()
    _runtime.pop(f"{provider}_api_key", None)


def get_current_provider() -> str:
    """Get the currently configured provider"""
    return _runtime.get("provider", DEFAULT_PROVIDER)


def set_current_provider(provider: str):
    """Set the current provider"""
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported provider: {provider}")

    _runtime["provider"] = provider


def get_provider_config(provider: str = None) -> Dict:
    """Get model configuration for a specific provider"""
    if provider is None:
        provider = get_current_provider()

    if provider not in PROVIDER_MODELS:
        raise ValueError(f"No configuration found for provider: {provider}")

    return PROVIDER_MODELS[provider]
