"""
Avatar-based interview session.

Wraps a ``HeyGenStreamingClient``: fetches a token through the relay, starts
the avatar with the interviewer configuration, optionally speaks a greeting
and opens voice chat, and assembles a transcript of both speakers from the
streaming events.
"""

import logging
import traceback
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, field_validator

from roleplay.bot.heygen_client import (
    AvatarQuality,
    HeyGenStreamingClient,
    StartAvatarRequest,
    StreamingEvent,
    TaskType,
    VoiceEmotion,
    VoiceSetting,
)
from roleplay.config.constants import (
    HEYGEN_DEFAULT_AVATAR,
    HEYGEN_DEFAULT_LANGUAGE,
    HEYGEN_DEFAULT_VOICE_RATE,
    HEYGEN_MAX_VOICE_RATE,
    HEYGEN_MIN_VOICE_RATE,
    LOGGER_NAME,
)
from roleplay.errors import RoleplayError
from roleplay.models.transcript import AvatarTranscript, TranscriptEntry

logger = logging.getLogger(LOGGER_NAME)

USER = "user"
AVATAR = "avatar"


class AvatarConfig(BaseModel):
    """User-chosen avatar options."""

    avatar_name: str = HEYGEN_DEFAULT_AVATAR
    language: str = HEYGEN_DEFAULT_LANGUAGE
    voice_rate: float = HEYGEN_DEFAULT_VOICE_RATE
    system_prompt: str = ""
    greeting: str = ""

    @field_validator("avatar_name", "language", mode="before")
    @classmethod
    def default_when_blank(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            return HEYGEN_DEFAULT_AVATAR if info.field_name == "avatar_name" else HEYGEN_DEFAULT_LANGUAGE
        return v.strip()

    @field_validator("voice_rate", mode="before")
    @classmethod
    def clamp_rate(cls, v):
        try:
            rate = float(v)
        except (TypeError, ValueError):
            return HEYGEN_DEFAULT_VOICE_RATE
        if rate != rate or rate == 0:
            return HEYGEN_DEFAULT_VOICE_RATE
        return min(HEYGEN_MAX_VOICE_RATE, max(HEYGEN_MIN_VOICE_RATE, rate))

    @field_validator("system_prompt", "greeting", mode="before")
    @classmethod
    def strip_text(cls, v):
        return (v or "").strip()

    def start_request(self) -> StartAvatarRequest:
        return StartAvatarRequest(
            quality=AvatarQuality.LOW,
            avatar_name=self.avatar_name,
            language=self.language,
            voice=VoiceSetting(rate=self.voice_rate, emotion=VoiceEmotion.EXCITED),
            knowledge_base=self.system_prompt or None,
        )


class AvatarObserver:
    """Receives avatar session updates. Override the hooks you need."""

    def on_connection(self, connected: bool) -> None:
        pass

    def on_transcript(self, entry: TranscriptEntry) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class AvatarSession:
    """
    One avatar conversation.

    Args:
        relay: Client used to obtain the HeyGen streaming token
        config: Avatar options
        observer: Receives connection, transcript and error updates
        microphone: Capture device used in voice-chat mode
        client_factory: Builds the streaming client from a token
    """

    def __init__(
        self,
        relay,
        config: Optional[AvatarConfig] = None,
        observer: Optional[AvatarObserver] = None,
        microphone=None,
        client_factory: Callable[[str], Any] = HeyGenStreamingClient,
    ):
        self.relay = relay
        self.config = config or AvatarConfig()
        self.observer = observer or AvatarObserver()
        self.microphone = microphone
        self._client_factory = client_factory

        self.client = None
        self.connected = False
        self.is_voice_chat_active = False
        self.transcript = AvatarTranscript()

    async def start(self, is_voice_chat: bool = True) -> bool:
        """
        Start the avatar and, if requested, voice chat.

        Returns:
            bool: False if any step failed; the error goes to the observer
        """
        logger.info(f"Starting avatar session (voice chat: {is_voice_chat})")
        try:
            token = await self.relay.get_heygen_token()
            self.client = self._client_factory(token)
            self._attach_events(self.client)

            await self.client.create_start_avatar(self.config.start_request())
            logger.info("Avatar session started")

            if self.config.greeting:
                await self.client.speak(self.config.greeting, TaskType.REPEAT)

            if is_voice_chat:
                await self.client.start_voice_chat(self.microphone)
                self.is_voice_chat_active = True
        except Exception as e:
            message = e.message if isinstance(e, RoleplayError) else str(e)
            logger.error(f"Error starting avatar session: {message}")
            logger.debug(f"Avatar start error details: {traceback.format_exc()}")
            self.observer.on_error(f"Error starting session: {message}")
            await self.stop()
            return False
        return True

    async def stop(self) -> None:
        """Stop the avatar; local state is reset even if stopping fails."""
        try:
            if self.client is not None:
                await self.client.stop_avatar()
                logger.info("Avatar session stopped")
        except Exception as e:
            logger.error(f"Stop error: {e}")
        finally:
            self._set_connected(False)
            self.client = None
            self.is_voice_chat_active = False
            self.transcript.clear()

    def mute(self) -> None:
        if self.client is not None and self.connected:
            self.client.mute_input_audio()

    def unmute(self) -> None:
        if self.client is not None and self.connected:
            self.client.unmute_input_audio()

    def _set_connected(self, connected: bool) -> None:
        if connected != self.connected:
            self.connected = connected
            self.observer.on_connection(connected)

    def _attach_events(self, client) -> None:
        client.on(StreamingEvent.STREAM_READY, lambda detail: self._set_connected(True))
        client.on(StreamingEvent.STREAM_DISCONNECTED, lambda detail: self._set_connected(False))

        client.on(StreamingEvent.USER_START, lambda detail: self._start_turn(USER))
        client.on(StreamingEvent.USER_TALKING_MESSAGE, lambda detail: self._append(USER, detail))
        client.on(StreamingEvent.USER_END_MESSAGE, lambda detail: self._end_turn(USER))

        client.on(StreamingEvent.AVATAR_START_TALKING, lambda detail: self._start_turn(AVATAR))
        client.on(StreamingEvent.AVATAR_TALKING_MESSAGE, lambda detail: self._append(AVATAR, detail))
        client.on(StreamingEvent.AVATAR_END_MESSAGE, lambda detail: self._end_turn(AVATAR))

    def _start_turn(self, role: str) -> None:
        self.observer.on_transcript(self.transcript.start_turn(role))

    def _append(self, role: str, detail: Dict[str, Any]) -> None:
        entry = self.transcript.append(role, _message_text(detail))
        if entry is not None:
            self.observer.on_transcript(entry)

    def _end_turn(self, role: str) -> None:
        entry = self.transcript.end_turn(role)
        if entry is not None:
            self.observer.on_transcript(entry)


def _message_text(detail: Dict[str, Any]) -> str:
    nested = detail.get("detail")
    if isinstance(nested, dict) and nested.get("message"):
        return str(nested["message"])
    return str(detail.get("message") or detail.get("text") or "")
