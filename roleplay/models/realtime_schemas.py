"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the messages the realtime session
sends to the Realtime API and the inbound messages it inspects. Only the
fields this application uses are modelled; unknown fields are kept.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from roleplay.config.constants import (
    AUDIO_FORMAT_PCM16,
    DEFAULT_TRANSCRIPTION_LANGUAGE,
    DEFAULT_TRANSCRIPTION_MODEL,
    VAD_PREFIX_PADDING_MS,
    VAD_SILENCE_DURATION_MS,
    VAD_THRESHOLD,
    VAD_TYPE,
)


class MessageRole(str, Enum):
    """Role of a participant in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class RealtimeBaseMessage(BaseModel):
    """Base model for Realtime API messages."""
    model_config = ConfigDict(extra="allow")

    type: str


# Outbound messages

class InputAudioTranscription(BaseModel):
    """Transcription settings for the user's audio."""
    model: str = DEFAULT_TRANSCRIPTION_MODEL
    language: str = DEFAULT_TRANSCRIPTION_LANGUAGE


class TurnDetection(BaseModel):
    """Server-side voice activity detection thresholds."""
    type: str = VAD_TYPE
    threshold: float = VAD_THRESHOLD
    prefix_padding_ms: int = VAD_PREFIX_PADDING_MS
    silence_duration_ms: int = VAD_SILENCE_DURATION_MS


class SessionConfig(BaseModel):
    """Session configuration sent once the socket opens."""
    modalities: List[str] = Field(default_factory=lambda: ["text", "audio"])
    instructions: str
    voice: str
    input_audio_format: str = AUDIO_FORMAT_PCM16
    output_audio_format: str = AUDIO_FORMAT_PCM16
    input_audio_transcription: InputAudioTranscription = Field(default_factory=InputAudioTranscription)
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)


class SessionUpdateMessage(RealtimeBaseMessage):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig


class InputTextContent(BaseModel):
    type: Literal["input_text"] = "input_text"
    text: str


class ConversationItem(BaseModel):
    type: Literal["message"] = "message"
    role: MessageRole = MessageRole.USER
    content: List[InputTextContent]


class ConversationItemCreateMessage(RealtimeBaseMessage):
    type: Literal["conversation.item.create"] = "conversation.item.create"
    item: ConversationItem


class ResponseCreateMessage(RealtimeBaseMessage):
    type: Literal["response.create"] = "response.create"


class ResponseCancelMessage(RealtimeBaseMessage):
    type: Literal["response.cancel"] = "response.cancel"


class InputAudioBufferAppendMessage(RealtimeBaseMessage):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64-encoded PCM16 audio")


# Inbound messages

class RealtimeErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str = "Unknown error"
    type: Optional[str] = None
    code: Optional[str] = None


class RealtimeErrorMessage(RealtimeBaseMessage):
    """Error message from OpenAI Realtime API."""
    type: Literal["error"] = "error"
    error: RealtimeErrorDetail = Field(default_factory=RealtimeErrorDetail)


class TranscriptMessage(RealtimeBaseMessage):
    """Completed transcript, either of the user's speech or the agent's reply."""
    transcript: Optional[str] = None


class AudioDeltaMessage(RealtimeBaseMessage):
    """A chunk of synthesized speech."""
    delta: Optional[str] = None


def outbound(message: RealtimeBaseMessage) -> Dict[str, Any]:
    """Serialize an outbound model to the JSON-ready dict sent on the socket."""
    return message.model_dump(mode="json")
