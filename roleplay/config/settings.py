"""
Application settings.

Two kinds of settings live here:

- ``ServerSettings``: secrets and endpoints read from the environment (and an
  optional ``.env`` file). The relay is the only component that sees the
  secrets; clients fetch what they need over HTTP.
- ``AgentSettings``: the user's interviewer preferences (voice, system
  instructions, whether the agent greets first). ``SettingsStore`` is the single
  load/save boundary for them; the loaded object is handed to each controller
  at construction instead of being read from global state.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from roleplay.config.constants import (
    DEFAULT_INSTRUCTIONS,
    DEFAULT_PLAN_URL,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_RELAY_URL,
    DEFAULT_VOICE,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_SETTINGS_PATH = Path.home() / ".roleplay" / "settings.json"


def load_environment(env_path: Optional[Path] = None) -> bool:
    """Load variables from a .env file if it exists.

    Returns:
        bool: True if a file was loaded
    """
    env_path = env_path or Path(".") / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.debug(f"Environment loaded from {env_path}")
        return True
    return False


class ServerSettings(BaseModel):
    """Secrets and endpoints taken from the process environment."""

    openai_api_key: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    heygen_api_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000
    realtime_model: str = DEFAULT_REALTIME_MODEL
    relay_url: str = DEFAULT_RELAY_URL
    plan_url: str = DEFAULT_PLAN_URL

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """Build settings from environment variables, empty strings count as unset."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            supabase_url=os.getenv("SUPABASE_URL_ROLEPLAY_PROJECT") or None,
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY_ROLEPLAY_PROJECT") or None,
            heygen_api_key=os.getenv("HEYGEN_API_KEY") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            realtime_model=os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            relay_url=os.getenv("RELAY_URL", DEFAULT_RELAY_URL),
            plan_url=os.getenv("INTERVIEW_PLAN_URL", DEFAULT_PLAN_URL),
        )


class AgentSettings(BaseModel):
    """Interviewer preferences persisted between runs.

    The aliases are the storage keys used on disk.
    """

    model_config = ConfigDict(populate_by_name=True)

    voice: str = Field(DEFAULT_VOICE, alias="voice_setting")
    instructions: str = Field(DEFAULT_INSTRUCTIONS, alias="system_instructions")
    agent_starts_conversation: bool = Field(True, alias="agent_starts_conversation")

    @field_validator("agent_starts_conversation", mode="before")
    @classmethod
    def parse_flag(cls, v):
        """Only an explicit false disables the greeting."""
        if isinstance(v, str):
            return v.strip().lower() != "false"
        if v is None:
            return True
        return v

    @field_validator("voice", "instructions", mode="before")
    @classmethod
    def default_when_blank(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_VOICE if info.field_name == "voice" else DEFAULT_INSTRUCTIONS
        return v


class SettingsStore:
    """Load and save ``AgentSettings`` as a JSON document."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        env_path = os.getenv("ROLEPLAY_SETTINGS_PATH")
        self.path = Path(path or env_path or DEFAULT_SETTINGS_PATH)

    def load(self) -> AgentSettings:
        """Return stored settings, or defaults when the file is missing or unreadable."""
        if not self.path.exists():
            return AgentSettings()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("settings file must contain a JSON object")
            return AgentSettings.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not read settings from {self.path}: {e}; using defaults")
            return AgentSettings()

    def save(self, settings: AgentSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(settings.model_dump(by_alias=True), indent=2),
            encoding="utf-8",
        )
        logger.debug(f"Settings saved to {self.path}")
