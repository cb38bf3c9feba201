"""
Client for HeyGen's streaming avatar API.

A session is created and started over REST with a short-lived token obtained
from the relay. Conversation events (who is talking, transcript fragments)
arrive on the session's realtime socket and are re-emitted to handlers
registered with :meth:`HeyGenStreamingClient.on`. In voice-chat mode the
client also streams microphone audio over that socket.
"""

import asyncio
import json
import logging
import traceback
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
import websockets
from pydantic import BaseModel, Field
from websockets.exceptions import ConnectionClosed

from roleplay.audio.codec import encode_audio_block
from roleplay.config.constants import (
    HEYGEN_API_BASE,
    HEYGEN_DEFAULT_AVATAR,
    HEYGEN_DEFAULT_LANGUAGE,
    HEYGEN_DEFAULT_VOICE_RATE,
    HTTP_TIMEOUT_SECONDS,
    LOGGER_NAME,
)
from roleplay.errors import TransportError

logger = logging.getLogger(LOGGER_NAME)

STREAMING_NEW_PATH = "/v1/streaming.new"
STREAMING_START_PATH = "/v1/streaming.start"
STREAMING_TASK_PATH = "/v1/streaming.task"
STREAMING_INTERRUPT_PATH = "/v1/streaming.interrupt"
STREAMING_STOP_PATH = "/v1/streaming.stop"

# Realtime socket message carrying user audio
AUDIO_APPEND_EVENT = "agent.audio_buffer_append"


class StreamingEvent(str, Enum):
    STREAM_READY = "stream_ready"
    STREAM_DISCONNECTED = "stream_disconnected"
    AVATAR_START_TALKING = "avatar_start_talking"
    AVATAR_STOP_TALKING = "avatar_stop_talking"
    AVATAR_TALKING_MESSAGE = "avatar_talking_message"
    AVATAR_END_MESSAGE = "avatar_end_message"
    USER_START = "user_start"
    USER_STOP = "user_stop"
    USER_TALKING_MESSAGE = "user_talking_message"
    USER_END_MESSAGE = "user_end_message"


class AvatarQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class VoiceEmotion(str, Enum):
    EXCITED = "excited"
    SERIOUS = "serious"
    FRIENDLY = "friendly"
    SOOTHING = "soothing"
    BROADCASTER = "broadcaster"


class TaskType(str, Enum):
    TALK = "talk"
    REPEAT = "repeat"


class STTProvider(str, Enum):
    DEEPGRAM = "deepgram"


class VoiceChatTransport(str, Enum):
    WEBSOCKET = "websocket"


class VoiceSetting(BaseModel):
    rate: float = HEYGEN_DEFAULT_VOICE_RATE
    emotion: VoiceEmotion = VoiceEmotion.EXCITED


class STTSettings(BaseModel):
    provider: STTProvider = STTProvider.DEEPGRAM


class StartAvatarRequest(BaseModel):
    """Body of ``streaming.new``."""

    quality: AvatarQuality = AvatarQuality.LOW
    avatar_name: str = HEYGEN_DEFAULT_AVATAR
    language: str = HEYGEN_DEFAULT_LANGUAGE
    voice: VoiceSetting = Field(default_factory=VoiceSetting)
    voice_chat_transport: VoiceChatTransport = VoiceChatTransport.WEBSOCKET
    stt_settings: STTSettings = Field(default_factory=STTSettings)
    knowledge_base: Optional[str] = None
    version: str = "v2"

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class StreamingSession(BaseModel):
    """Fields of the ``streaming.new`` response the client uses."""

    session_id: str
    url: Optional[str] = None
    access_token: Optional[str] = None
    realtime_endpoint: Optional[str] = None


EventHandler = Callable[[Dict[str, Any]], None]


class HeyGenStreamingClient:
    """
    Event-emitting client for one HeyGen streaming session.

    Args:
        token: Streaming token from ``streaming.create_token``
        base_url: HeyGen API root
        http_client: Optional ``httpx.AsyncClient``
    """

    def __init__(self, token: str, base_url: str = HEYGEN_API_BASE, http_client: Optional[httpx.AsyncClient] = None):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
        self.session: Optional[StreamingSession] = None
        self.ws = None
        self.muted = False
        self._handlers: Dict[StreamingEvent, List[EventHandler]] = defaultdict(list)
        self._recv_task: Optional[asyncio.Task] = None
        self._voice_task: Optional[asyncio.Task] = None

    @property
    def session_id(self) -> Optional[str]:
        return self.session.session_id if self.session else None

    def on(self, event: StreamingEvent, handler: EventHandler) -> None:
        self._handlers[StreamingEvent(event)].append(handler)

    def emit(self, event: StreamingEvent, detail: Optional[Dict[str, Any]] = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(detail or {})
            except Exception as e:
                logger.error(f"Error in {event.value} handler: {e}")
                logger.debug(f"Handler error details: {traceback.format_exc()}")

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            response = await self.http.post(f"{self.base_url}{path}", json=body, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"HeyGen request to {path} failed: {e}", service="heygen") from e
        if response.is_error:
            raise TransportError(f"HeyGen {path} returned {response.status_code}: {response.text}", service="heygen")
        try:
            return response.json()
        except ValueError:
            return {}

    def _require_session(self) -> str:
        if self.session is None:
            raise TransportError("No active avatar session", service="heygen")
        return self.session.session_id

    async def create_start_avatar(self, request: StartAvatarRequest) -> StreamingSession:
        """Create the streaming session, start it and attach the event socket."""
        payload = await self._post(STREAMING_NEW_PATH, request.payload())
        self.session = StreamingSession.model_validate(payload.get("data") or {})
        logger.info(f"HeyGen session created: {self.session.session_id}")

        await self._post(STREAMING_START_PATH, {"session_id": self.session.session_id})
        if self.session.realtime_endpoint:
            self.ws = await websockets.connect(self.session.realtime_endpoint)
            self._recv_task = asyncio.create_task(self._recv_loop())

        self.emit(StreamingEvent.STREAM_READY, {"session_id": self.session.session_id, "url": self.session.url})
        return self.session

    async def speak(self, text: str, task_type: TaskType = TaskType.TALK) -> Dict[str, Any]:
        session_id = self._require_session()
        return await self._post(
            STREAMING_TASK_PATH,
            {"session_id": session_id, "text": text, "task_type": TaskType(task_type).value},
        )

    async def interrupt(self) -> None:
        await self._post(STREAMING_INTERRUPT_PATH, {"session_id": self._require_session()})

    async def start_voice_chat(self, microphone=None) -> None:
        """Stream microphone blocks to the avatar; without a microphone only the mode flag changes."""
        self._require_session()
        self.muted = False
        if microphone is None:
            return
        if self.ws is None:
            raise TransportError("Voice chat needs the realtime socket", service="heygen")
        microphone.open()
        self._voice_task = asyncio.create_task(self._pump_audio(microphone))

    def mute_input_audio(self) -> None:
        self.muted = True

    def unmute_input_audio(self) -> None:
        self.muted = False

    async def stop_avatar(self) -> None:
        """Stop the session on HeyGen's side and release local resources."""
        session_id = self.session_id
        try:
            if session_id:
                await self._post(STREAMING_STOP_PATH, {"session_id": session_id})
        finally:
            for task in (self._voice_task, self._recv_task):
                if task and not task.done() and task is not asyncio.current_task():
                    task.cancel()
            self._voice_task = self._recv_task = None
            if self.ws is not None:
                ws, self.ws = self.ws, None
                await ws.close()
            self.session = None
            if self._owns_client:
                await self.http.aclose()
            self.emit(StreamingEvent.STREAM_DISCONNECTED)

    def handle_event(self, data: Dict[str, Any]) -> None:
        """Re-emit one socket event; unknown event types are ignored."""
        event_type = data.get("event_type") or data.get("type")
        try:
            event = StreamingEvent(event_type)
        except ValueError:
            logger.debug(f"Unhandled avatar event: {event_type}")
            return
        self.emit(event, data)

    async def _recv_loop(self) -> None:
        try:
            async for raw in self.ws:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning(f"Received invalid JSON from avatar socket: {str(raw)[:100]}...")
                    continue
                self.handle_event(data)
        except ConnectionClosed as e:
            logger.info(f"Avatar socket closed: {e}")
        self.emit(StreamingEvent.STREAM_DISCONNECTED)

    async def _pump_audio(self, microphone) -> None:
        try:
            async for block in microphone.blocks():
                if self.ws is None:
                    break
                if self.muted:
                    continue
                await self.ws.send(json.dumps({"type": AUDIO_APPEND_EVENT, "audio": encode_audio_block(block)}))
        except ConnectionClosed as e:
            logger.info(f"Avatar voice chat stopped: {e}")
        finally:
            microphone.close()
