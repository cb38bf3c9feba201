"""
Bot module for spoken interview sessions.

Key components:
- session_state: Connection status enum, session events and the transition
  table every status change goes through.
- RealtimeSession: Streams microphone audio to the OpenAI Realtime API, plays
  the agent's speech with interruption support and requests feedback for
  each answer.
- HeyGenStreamingClient: Event-emitting client for HeyGen's streaming avatar API.
- AvatarSession: Avatar interview with incremental transcript assembly.

Usage examples:
```python
from roleplay.audio.devices import Microphone, Speaker
from roleplay.bot import RealtimeSession
from roleplay.config.settings import SettingsStore
from roleplay.services.feedback_agent import FeedbackAgent
from roleplay.services.relay_client import RelayClient

async def interview():
    async with RelayClient() as relay:
        session = RealtimeSession(
            relay,
            SettingsStore().load(),
            microphone=Microphone(),
            output=Speaker(),
            feedback_agent=FeedbackAgent(relay),
        )
        if await session.connect():
            await session.wait_closed()
```
"""

from roleplay.bot.avatar_session import AvatarConfig, AvatarObserver, AvatarSession
from roleplay.bot.heygen_client import HeyGenStreamingClient, StreamingEvent
from roleplay.bot.realtime_session import RealtimeSession, SessionObserver
from roleplay.bot.session_state import ConnectionStatus, SessionEvent, SessionStateMachine

__all__ = [
    "AvatarConfig",
    "AvatarObserver",
    "AvatarSession",
    "ConnectionStatus",
    "HeyGenStreamingClient",
    "RealtimeSession",
    "SessionEvent",
    "SessionObserver",
    "SessionStateMachine",
    "StreamingEvent",
]
