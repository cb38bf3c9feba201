"""
Configuration module for the interview roleplay application.

Key components:
- constants: Application-wide constants, including realtime message types,
  audio capture parameters, vendor endpoints and default model settings.
- logging_config: Console and rotating-file logging for the application logger.
- settings: Server settings read from the environment and the persisted
  agent settings (voice, instructions, auto-greet flag).

Usage examples:
```python
from roleplay.config.constants import LOGGER_NAME, DEFAULT_REALTIME_MODEL
from roleplay.config.logging_config import configure_logging
from roleplay.config.settings import ServerSettings, SettingsStore

logger = configure_logging()
server_settings = ServerSettings.from_env()
agent_settings = SettingsStore().load()
```
"""

# Config module initialization
