"""
Realtime interview session against the OpenAI Realtime API.

This module drives one spoken interview: it streams microphone audio to the
Realtime API, plays the agent's synthesized speech, keeps the conversation
log and requests feedback for each answer the candidate gives to the agent's
last question.
"""

import asyncio
import json
import logging
import traceback
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from roleplay.audio.codec import decode_audio_delta, encode_audio_block
from roleplay.audio.playback import PlaybackQueue
from roleplay.bot.session_state import ConnectionStatus, SessionEvent, SessionStateMachine
from roleplay.config.constants import (
    DEFAULT_REALTIME_MODEL,
    GREETING_DELAY_SECONDS,
    GREETING_PROMPT,
    LOGGER_NAME,
    MESSAGE_TYPE_AUDIO_DELTA,
    MESSAGE_TYPE_AUDIO_DONE,
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_INPUT_TRANSCRIPTION_COMPLETED,
    MESSAGE_TYPE_ITEM_CREATED,
    MESSAGE_TYPE_SESSION_CREATED,
    MESSAGE_TYPE_SESSION_UPDATED,
    MESSAGE_TYPE_SPEECH_STARTED,
    MESSAGE_TYPE_SPEECH_STOPPED,
    MESSAGE_TYPE_TRANSCRIPT_DELTA,
    MESSAGE_TYPE_TRANSCRIPT_DONE,
    REALTIME_API_KEY_SUBPROTOCOL_PREFIX,
    REALTIME_API_URL,
    REALTIME_BETA_SUBPROTOCOL,
    REALTIME_SUBPROTOCOL,
)
from roleplay.config.settings import AgentSettings
from roleplay.errors import InvalidTransitionError, RoleplayError
from roleplay.models.feedback import FeedbackRecord
from roleplay.models.realtime_schemas import (
    AudioDeltaMessage,
    ConversationItem,
    ConversationItemCreateMessage,
    InputAudioBufferAppendMessage,
    InputTextContent,
    MessageRole,
    RealtimeBaseMessage,
    RealtimeErrorMessage,
    ResponseCancelMessage,
    ResponseCreateMessage,
    SessionConfig,
    SessionUpdateMessage,
    TranscriptMessage,
    outbound,
)
from roleplay.models.transcript import ConversationLog

logger = logging.getLogger(LOGGER_NAME)

# Large enough for audio deltas
WS_MAX_SIZE = 16 * 1024 * 1024

MessageHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class SessionObserver:
    """Receives session updates. Override the hooks you need."""

    def on_status(self, status: ConnectionStatus) -> None:
        pass

    def on_message(self, role: str, content: str) -> None:
        pass

    def on_feedback(self, record: FeedbackRecord) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class RealtimeSession:
    """
    One voice interview over the Realtime API.

    Args:
        relay: Client used to obtain the API key
        settings: Interviewer settings loaded for this session
        microphone: Capture device with ``open()``, ``blocks()`` and ``close()``
        output: Playback device with ``play(samples, on_ended)`` and ``close()``
        feedback_agent: Optional agent scoring each answer
        observer: Receives status, message, feedback and error updates
        model: Realtime model name
    """

    def __init__(
        self,
        relay,
        settings: AgentSettings,
        microphone,
        output,
        feedback_agent=None,
        observer: Optional[SessionObserver] = None,
        model: str = DEFAULT_REALTIME_MODEL,
    ):
        self.relay = relay
        self.settings = settings
        self.microphone = microphone
        self.output = output
        self.feedback_agent = feedback_agent
        self.observer = observer or SessionObserver()
        self.model = model

        self.state = SessionStateMachine(on_change=self.observer.on_status)
        self.conversation = ConversationLog()
        self.playback = PlaybackQueue(output)
        self.feedback: List[FeedbackRecord] = []

        self.ws = None
        self.is_agent_speaking = False
        self.current_question: Optional[str] = None
        self.waiting_for_answer = False
        self.question_count = 0

        self._pump_task: Optional[asyncio.Task] = None
        self._recv_task: Optional[asyncio.Task] = None
        self._greeting_task: Optional[asyncio.Task] = None
        self._feedback_tasks: Set[asyncio.Task] = set()

        self._handlers: Dict[str, MessageHandler] = {
            MESSAGE_TYPE_SESSION_CREATED: self._handle_session_ready,
            MESSAGE_TYPE_SESSION_UPDATED: self._handle_session_ready,
            MESSAGE_TYPE_ITEM_CREATED: self._handle_ignored,
            MESSAGE_TYPE_TRANSCRIPT_DELTA: self._handle_ignored,
            MESSAGE_TYPE_SPEECH_STARTED: self._handle_speech_started,
            MESSAGE_TYPE_SPEECH_STOPPED: self._handle_speech_stopped,
            MESSAGE_TYPE_INPUT_TRANSCRIPTION_COMPLETED: self._handle_user_transcript,
            MESSAGE_TYPE_TRANSCRIPT_DONE: self._handle_agent_transcript,
            MESSAGE_TYPE_AUDIO_DELTA: self._handle_audio_delta,
            MESSAGE_TYPE_AUDIO_DONE: self._handle_audio_done,
            MESSAGE_TYPE_ERROR: self._handle_error,
        }

    @property
    def status(self) -> ConnectionStatus:
        return self.state.status

    @property
    def url(self) -> str:
        return f"{REALTIME_API_URL}?model={self.model}"

    def session_config(self) -> SessionConfig:
        return SessionConfig(instructions=self.settings.instructions, voice=self.settings.voice)

    async def connect(self) -> bool:
        """
        Open the microphone and the Realtime socket and start streaming.

        Returns:
            bool: True if the session is live, False if any step failed
        """
        if not self.state.can(SessionEvent.CONNECT):
            logger.warning(f"Cannot connect while {self.status.value}")
            return False

        self._advance(SessionEvent.CONNECT)
        try:
            api_key = await self.relay.get_api_key()
            self.microphone.open()

            logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
            self.ws = await websockets.connect(
                self.url,
                subprotocols=[
                    REALTIME_SUBPROTOCOL,
                    f"{REALTIME_API_KEY_SUBPROTOCOL_PREFIX}{api_key}",
                    REALTIME_BETA_SUBPROTOCOL,
                ],
                max_size=WS_MAX_SIZE,
            )
            self._advance(SessionEvent.SOCKET_OPENED)

            await self._send(SessionUpdateMessage(session=self.session_config()), raise_on_error=True)
            logger.info(f"Session configured with voice '{self.settings.voice}'")
        except Exception as e:
            message = e.message if isinstance(e, RoleplayError) else str(e)
            logger.error(f"Failed to connect realtime session: {message}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            await self._shutdown()
            self._advance(SessionEvent.FAILED)
            self.observer.on_error(message)
            return False

        self._recv_task = asyncio.create_task(self._recv_loop())
        self._pump_task = asyncio.create_task(self._pump_audio())
        if self.settings.agent_starts_conversation:
            self._greeting_task = asyncio.create_task(self._send_greeting())

        logger.info("Successfully connected to OpenAI Realtime API")
        return True

    async def disconnect(self) -> None:
        """Stop streaming and release every device. Safe to call repeatedly."""
        logger.info("Disconnecting realtime session")
        await self._shutdown()
        self._advance(SessionEvent.DISCONNECT)

    def clear_conversation(self) -> None:
        self.conversation.clear()

    async def wait_closed(self) -> None:
        """Block until the receive loop ends."""
        if self._recv_task:
            await asyncio.gather(self._recv_task, return_exceptions=True)

    async def wait_for_feedback(self) -> None:
        """Wait for feedback requests that are still running."""
        if self._feedback_tasks:
            await asyncio.gather(*self._feedback_tasks, return_exceptions=True)

    async def interrupt(self) -> bool:
        """Cancel the agent's response and silence queued speech.

        Returns:
            bool: False if nothing was speaking or queued
        """
        if not (self.is_agent_speaking or self.playback.has_audio):
            return False
        logger.info("User interrupted agent; cancelling response")
        await self._send(ResponseCancelMessage())
        self.playback.flush()
        self.is_agent_speaking = False
        return True

    async def handle_message(self, raw: Union[str, bytes, Dict[str, Any]]) -> None:
        """Route one inbound message to its handler by ``type``."""
        if isinstance(raw, dict):
            data = raw
        else:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Received invalid JSON: {str(raw)[:100]}...")
                return

        message_type = data.get("type")
        handler = self._handlers.get(message_type)
        if handler is None:
            logger.debug(f"Unhandled message type: {message_type}")
            return
        try:
            await handler(data)
        except ValidationError as e:
            logger.warning(f"Malformed {message_type} message: {e}")

    # Inbound handlers

    async def _handle_ignored(self, data: Dict[str, Any]) -> None:
        pass

    async def _handle_session_ready(self, data: Dict[str, Any]) -> None:
        logger.info(f"Realtime {data.get('type')}")
        self._advance(SessionEvent.SESSION_READY)

    async def _handle_speech_started(self, data: Dict[str, Any]) -> None:
        self._advance(SessionEvent.SPEECH_STARTED)
        await self.interrupt()

    async def _handle_speech_stopped(self, data: Dict[str, Any]) -> None:
        self._advance(SessionEvent.SPEECH_STOPPED)

    async def _handle_user_transcript(self, data: Dict[str, Any]) -> None:
        transcript = TranscriptMessage.model_validate(data).transcript
        if not transcript:
            return

        self._add_message(MessageRole.USER.value, transcript)
        if self.waiting_for_answer and self.current_question:
            self.question_count += 1
            self._schedule_feedback(self.current_question, transcript, self.question_count)
            self.current_question = None
            self.waiting_for_answer = False

    async def _handle_agent_transcript(self, data: Dict[str, Any]) -> None:
        transcript = TranscriptMessage.model_validate(data).transcript
        if transcript:
            self._add_message(MessageRole.ASSISTANT.value, transcript)
            self.current_question = transcript
            self.waiting_for_answer = True
        self._advance(SessionEvent.TRANSCRIPT_DONE)

    async def _handle_audio_delta(self, data: Dict[str, Any]) -> None:
        delta = AudioDeltaMessage.model_validate(data).delta
        if not delta:
            return
        try:
            samples = decode_audio_delta(delta)
        except ValueError as e:
            logger.warning(f"Dropping undecodable audio delta: {e}")
            return

        self.playback.enqueue(samples)
        self.is_agent_speaking = True
        self._advance(SessionEvent.AUDIO_DELTA)

    async def _handle_audio_done(self, data: Dict[str, Any]) -> None:
        self.is_agent_speaking = False
        self._advance(SessionEvent.AUDIO_DONE)

    async def _handle_error(self, data: Dict[str, Any]) -> None:
        message = RealtimeErrorMessage.model_validate(data).error.message
        logger.error(f"Received error from OpenAI: {message}")
        self._add_message(MessageRole.SYSTEM.value, f"Error: {message}")
        self.observer.on_error(message)

    # Internals

    def _advance(self, event: SessionEvent) -> None:
        try:
            self.state.dispatch(event)
        except InvalidTransitionError as e:
            logger.warning(e.message)

    def _add_message(self, role: str, content: str) -> None:
        self.conversation.add(role, content)
        self.observer.on_message(role, content)

    def _schedule_feedback(self, question: str, answer: str, question_number: int) -> None:
        if self.feedback_agent is None:
            return
        task = asyncio.create_task(self._run_feedback(question, answer, question_number))
        self._feedback_tasks.add(task)
        task.add_done_callback(self._feedback_tasks.discard)

    async def _run_feedback(self, question: str, answer: str, question_number: int) -> None:
        record = await self.feedback_agent.generate_feedback(question, answer, question_number)
        self.feedback.append(record)
        self.observer.on_feedback(record)

    async def _send(self, message: RealtimeBaseMessage, raise_on_error: bool = False) -> bool:
        if self.ws is None:
            return False
        try:
            await self.ws.send(json.dumps(outbound(message)))
            return True
        except ConnectionClosed as e:
            if raise_on_error:
                raise
            logger.warning(f"Could not send {message.type}: {e}")
            return False

    async def _send_greeting(self) -> None:
        await asyncio.sleep(GREETING_DELAY_SECONDS)
        if not self.state.is_live:
            return
        logger.info("Asking agent to open the conversation")
        item = ConversationItem(content=[InputTextContent(text=GREETING_PROMPT)])
        await self._send(ConversationItemCreateMessage(item=item))
        await self._send(ResponseCreateMessage())

    async def _pump_audio(self) -> None:
        """Forward every microphone block as an ``input_audio_buffer.append``."""
        try:
            async for block in self.microphone.blocks():
                if not self.state.is_live:
                    break
                if not await self._send(InputAudioBufferAppendMessage(audio=encode_audio_block(block))):
                    break
        except RoleplayError as e:
            logger.error(f"Audio capture stopped: {e.message}")
        except OSError as e:
            logger.error(f"Audio capture stopped: {e}")

    async def _recv_loop(self) -> None:
        failure: Optional[str] = None
        try:
            async for raw in self.ws:
                await self.handle_message(raw)
        except ConnectionClosedOK:
            logger.info("WebSocket connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"Connection closed unexpectedly: {e}")
            failure = f"Connection error: {e}"
        except Exception as e:
            logger.error(f"Error in receive loop: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")
            failure = f"Session error: {e}"

        logger.info("Receive loop exited")
        await self._shutdown()
        if failure:
            self._advance(SessionEvent.FAILED)
            self.observer.on_error(failure)
        self._advance(SessionEvent.SOCKET_CLOSED)

    async def _shutdown(self) -> None:
        for task in (self._greeting_task, self._pump_task, self._recv_task):
            await _cancel(task)
        self._greeting_task = self._pump_task = self._recv_task = None

        if self.ws is not None:
            ws, self.ws = self.ws, None
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")

        self.microphone.close()
        self.playback.flush()
        self.output.close()
        self.is_agent_speaking = False


async def _cancel(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
