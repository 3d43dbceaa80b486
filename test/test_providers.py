# Unit tests for provider configuration, run without real API keys
import os
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from openai import AsyncOpenAI

from utils import config
from utils.config import (
    get_current_provider, set_current_provider, save_api_key, load_api_key, clear_api_key,
    SUPPORTED_PROVIDERS, DEFAULT_PROVIDER, API_KEY_ENV_VARS,
)
from utils.providers import (
    ProviderError, create_client, get_api_call_params, get_model_for_task,
    get_provider_info, list_available_models,
)


class TestProviderConfiguration(unittest.TestCase):
    def setUp(self):
        config._runtime.clear()
        self.addCleanup(config._runtime.clear)

    def test_default_provider(self):
        self.assertEqual(get_current_provider(), DEFAULT_PROVIDER)

    def test_provider_switching(self):
        for provider in SUPPORTED_PROVIDERS:
            set_current_provider(provider)
            self.assertEqual(get_current_provider(), provider)

            info = get_provider_info(provider)
            self.assertIn("name", info)
            self.assertIn("description", info)
            self.assertIn("chat", list_available_models(provider))

    def test_unknown_provider_rejected(self):
        with self.assertRaises(ValueError):
            set_current_provider("invalid")
        self.assertEqual(get_provider_info("invalid"), {})

    def test_model_per_intent(self):
        for task in ("structure", "lesson", "lesson_deep", "graph", "exam", "chat"):
            for provider in SUPPORTED_PROVIDERS:
                self.assertTrue(get_model_for_task(task, provider))
        self.assertEqual(get_model_for_task("speech", "openai"), "gpt-4o-mini-tts")

    def test_speech_unsupported_on_openrouter(self):
        with self.assertRaises(ProviderError):
            get_model_for_task("speech", "openrouter")
        self.assertFalse(get_provider_info("openrouter")["supports_speech"])
        self.assertNotIn("speech", list_available_models("openrouter"))


class TestApiKeys(unittest.TestCase):
    def setUp(self):
        config._runtime.clear()
        self.addCleanup(config._runtime.clear)

    def test_runtime_key_wins_over_environment(self):
        with patch.dict(os.environ, {API_KEY_ENV_VARS["openai"]: "sk-from-env"}):
            self.assertEqual(load_api_key("openai"), "sk-from-env")
            save_api_key("sk-typed-in", "openai")
            self.assertEqual(load_api_key("openai"), "sk-typed-in")
            clear_api_key("openai")
            self.assertEqual(load_api_key("openai"), "sk-from-env")

    def test_saved_key_visible_process_wide(self):
        from utils import providers

        with patch.dict(os.environ, {}, clear=True):
            save_api_key("sk-or-shared", "openrouter")
            save_api_key("sk-shared", "openai")
            clear_api_key("openrouter")

            # The providers module reads the same store the settings page writes
            self.assertIsNone(providers.load_api_key("openrouter"))
            self.assertEqual(providers.load_api_key("openai"), "sk-shared")

    def test_first_saved_key_selects_provider(self):
        save_api_key("sk-or-test", "openrouter")
        self.assertEqual(get_current_provider(), "openrouter")

    def test_create_client_without_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ProviderError):
                create_client("openai")

    def test_create_client_for_openrouter(self):
        save_api_key("sk-or-test", "openrouter")
        client = create_client("openrouter")
        self.assertIsInstance(client, AsyncOpenAI)
        self.assertIn("openrouter.ai", str(client.base_url))

    def test_create_client_unsupported_provider(self):
        with self.assertRaises(ProviderError):
            create_client("invalid")


class TestApiCallParams(unittest.TestCase):
    def test_unset_params_left_out(self):
        params = get_api_call_params(model="gpt-4o-mini", messages=[{"role": "user", "content": "Hi"}],
                                     provider="openai")
        self.assertEqual(set(params), {"model", "messages"})

    def test_response_format_passed_through(self):
        response_format = {"type": "json_schema", "json_schema": {"name": "x", "schema": {}}}
        params = get_api_call_params(model="gpt-4o", messages=[], provider="openai",
                                     temperature=0.2, response_format=response_format)
        self.assertEqual(params["temperature"], 0.2)
        self.assertIs(params["response_format"], response_format)


if __name__ == "__main__":
    unittest.main()
