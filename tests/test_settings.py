import json
import unittest
from pathlib import Path
from unittest.mock import patch

import pytest

from roleplay.config.constants import DEFAULT_INSTRUCTIONS, DEFAULT_VOICE
from roleplay.config.settings import AgentSettings, ServerSettings, SettingsStore, load_environment


def test_defaults_when_file_missing(isolated_settings_path):
    settings = SettingsStore().load()

    assert settings.voice == DEFAULT_VOICE
    assert settings.instructions == DEFAULT_INSTRUCTIONS
    assert settings.agent_starts_conversation is True


def test_save_and_load_round_trip(isolated_settings_path):
    store = SettingsStore()
    store.save(AgentSettings(voice="coral", instructions="Be strict.", agent_starts_conversation=False))

    stored = json.loads(isolated_settings_path.read_text())
    assert stored == {
        "voice_setting": "coral",
        "system_instructions": "Be strict.",
        "agent_starts_conversation": False,
    }
    loaded = store.load()
    assert loaded.voice == "coral"
    assert loaded.instructions == "Be strict."
    assert loaded.agent_starts_conversation is False


def test_corrupt_file_falls_back_to_defaults(isolated_settings_path):
    isolated_settings_path.write_text("{not json")
    assert SettingsStore().load() == AgentSettings()

    isolated_settings_path.write_text("[1, 2]")
    assert SettingsStore().load() == AgentSettings()


@pytest.mark.parametrize("raw, expected", [("false", False), ("False", False), ("true", True), ("yes", True), (None, True)])
def test_greeting_flag_only_disabled_by_explicit_false(raw, expected):
    assert AgentSettings.model_validate({"agent_starts_conversation": raw}).agent_starts_conversation is expected


def test_blank_values_use_defaults():
    settings = AgentSettings.model_validate({"voice_setting": "  ", "system_instructions": ""})
    assert settings.voice == DEFAULT_VOICE
    assert settings.instructions == DEFAULT_INSTRUCTIONS


def test_explicit_path_wins(tmp_path):
    path = tmp_path / "custom.json"
    assert SettingsStore(path).path == path


class TestServerSettings(unittest.TestCase):
    def test_from_env(self):
        env = {
            "OPENAI_API_KEY": "sk-1",
            "SUPABASE_URL_ROLEPLAY_PROJECT": "https://db.test",
            "SUPABASE_ANON_KEY_ROLEPLAY_PROJECT": "",
            "PORT": "4000",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = ServerSettings.from_env()

        self.assertEqual(settings.openai_api_key, "sk-1")
        self.assertEqual(settings.supabase_url, "https://db.test")
        self.assertIsNone(settings.supabase_anon_key)
        self.assertIsNone(settings.heygen_api_key)
        self.assertEqual(settings.port, 4000)
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertEqual(settings.relay_url, "http://localhost:3000")

    def test_load_environment_missing_file(self):
        self.assertFalse(load_environment(Path("/nonexistent/.env")))
