"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "interview_roleplay"

# Default OpenAI models
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-10-01"
DEFAULT_FEEDBACK_MODEL = "gpt-4o-mini"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"
DEFAULT_TRANSCRIPTION_LANGUAGE = "en"

# Realtime endpoint and sub-protocols
REALTIME_API_URL = "wss://api.openai.com/v1/realtime"
REALTIME_SUBPROTOCOL = "realtime"
REALTIME_API_KEY_SUBPROTOCOL_PREFIX = "openai-insecure-api-key."
REALTIME_BETA_SUBPROTOCOL = "openai-beta.realtime-v1"

# Audio capture and playback
SAMPLE_RATE = 24000
CHANNELS = 1
CAPTURE_BLOCK_SIZE = 4096  # samples per outbound append event
AUDIO_FORMAT_PCM16 = "pcm16"
PCM16_POSITIVE_SCALE = 0x7FFF
PCM16_NEGATIVE_SCALE = 0x8000

# Server-side voice activity detection
VAD_TYPE = "server_vad"
VAD_THRESHOLD = 0.5
VAD_PREFIX_PADDING_MS = 300
VAD_SILENCE_DURATION_MS = 500

# Agent greeting
GREETING_DELAY_SECONDS = 0.5
GREETING_PROMPT = "Hello! Please introduce yourself and start our conversation."

# Agent settings defaults
DEFAULT_VOICE = "alloy"
DEFAULT_INSTRUCTIONS = (
    'Your name is "goozoo" and you should always start the conversation by '
    "introducing yourself."
)
AVAILABLE_VOICES = ("alloy", "ash", "ballad", "coral", "echo", "sage", "shimmer", "verse")

# Feedback generation
FEEDBACK_MAX_TOKENS = 1500
FEEDBACK_TEMPERATURE = 0.3
DEFAULT_SCORE = 0.5
PLACEHOLDER_TEXT = "Not provided"
NO_SUMMARY_TEXT = "No summary available"

# Interview plan polling
DEFAULT_PLAN_URL = "https://roleplay-project.onrender.com"
PLAN_POLL_INTERVAL_SECONDS = 5.0
PLAN_MAX_ATTEMPTS = 120
PLAN_MAX_BACKOFF_SECONDS = 60.0
PLAN_STATUS_COMPLETED = "completed"
PLAN_STATUS_ERROR = "error"

# Relay
DEFAULT_RELAY_URL = "http://localhost:3000"
HTTP_TIMEOUT_SECONDS = 30.0

# HeyGen streaming avatar
HEYGEN_API_BASE = "https://api.heygen.com"
HEYGEN_DEFAULT_AVATAR = "default"
HEYGEN_DEFAULT_LANGUAGE = "en"
HEYGEN_DEFAULT_VOICE_RATE = 1.2
HEYGEN_MIN_VOICE_RATE = 0.5
HEYGEN_MAX_VOICE_RATE = 1.5

# Realtime message types - outbound
MESSAGE_TYPE_SESSION_UPDATE = "session.update"
MESSAGE_TYPE_CONVERSATION_ITEM_CREATE = "conversation.item.create"
MESSAGE_TYPE_RESPONSE_CREATE = "response.create"
MESSAGE_TYPE_RESPONSE_CANCEL = "response.cancel"
MESSAGE_TYPE_INPUT_AUDIO_APPEND = "input_audio_buffer.append"

# Realtime message types - inbound
MESSAGE_TYPE_SESSION_CREATED = "session.created"
MESSAGE_TYPE_SESSION_UPDATED = "session.updated"
MESSAGE_TYPE_ITEM_CREATED = "conversation.item.created"
MESSAGE_TYPE_SPEECH_STARTED = "input_audio_buffer.speech_started"
MESSAGE_TYPE_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
MESSAGE_TYPE_INPUT_TRANSCRIPTION_COMPLETED = (
    "conversation.item.input_audio_transcription.completed"
)
MESSAGE_TYPE_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
MESSAGE_TYPE_TRANSCRIPT_DONE = "response.audio_transcript.done"
MESSAGE_TYPE_AUDIO_DELTA = "response.audio.delta"
MESSAGE_TYPE_AUDIO_DONE = "response.audio.done"
MESSAGE_TYPE_ERROR = "error"
