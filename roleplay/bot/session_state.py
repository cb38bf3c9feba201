"""
Connection state machine for the realtime interview session.

Every change of ``ConnectionStatus`` goes through ``SessionStateMachine`` and
the ``TRANSITIONS`` table, which lists every (status, event) pair. A pair maps
to the next status, to ``Disposition.IGNORE`` (status unchanged, for example a
late server message after disconnecting) or to ``Disposition.REJECT`` (the
caller made a mistake, for example connecting twice).
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Union

from roleplay.config.constants import LOGGER_NAME
from roleplay.errors import InvalidTransitionError

logger = logging.getLogger(LOGGER_NAME)


class ConnectionStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    LISTENING = "listening"
    USER_SPEAKING = "user_speaking"
    AGENT_SPEAKING = "agent_speaking"
    PROCESSING = "processing"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class SessionEvent(str, Enum):
    CONNECT = "connect"
    SOCKET_OPENED = "socket_opened"
    SESSION_READY = "session_ready"
    SPEECH_STARTED = "speech_started"
    SPEECH_STOPPED = "speech_stopped"
    TRANSCRIPT_DONE = "transcript_done"
    AUDIO_DELTA = "audio_delta"
    AUDIO_DONE = "audio_done"
    FAILED = "failed"
    DISCONNECT = "disconnect"
    SOCKET_CLOSED = "socket_closed"


class Disposition(str, Enum):
    IGNORE = "ignore"
    REJECT = "reject"


Outcome = Union[ConnectionStatus, Disposition]

S = ConnectionStatus
E = SessionEvent
IGNORE = Disposition.IGNORE
REJECT = Disposition.REJECT

# States in which the socket is open
LIVE_STATES = frozenset({S.CONNECTED, S.LISTENING, S.USER_SPEAKING, S.AGENT_SPEAKING, S.PROCESSING})


def _live_row(session_ready: Outcome = IGNORE) -> Dict[SessionEvent, Outcome]:
    return {
        E.CONNECT: REJECT,
        E.SOCKET_OPENED: REJECT,
        E.SESSION_READY: session_ready,
        E.SPEECH_STARTED: S.USER_SPEAKING,
        E.SPEECH_STOPPED: S.PROCESSING,
        E.TRANSCRIPT_DONE: S.LISTENING,
        E.AUDIO_DELTA: S.AGENT_SPEAKING,
        E.AUDIO_DONE: S.LISTENING,
        E.FAILED: S.ERROR,
        E.DISCONNECT: S.DISCONNECTED,
        E.SOCKET_CLOSED: S.DISCONNECTED,
    }


def _closed_row() -> Dict[SessionEvent, Outcome]:
    return {
        E.CONNECT: S.CONNECTING,
        E.SOCKET_OPENED: REJECT,
        E.SESSION_READY: IGNORE,
        E.SPEECH_STARTED: IGNORE,
        E.SPEECH_STOPPED: IGNORE,
        E.TRANSCRIPT_DONE: IGNORE,
        E.AUDIO_DELTA: IGNORE,
        E.AUDIO_DONE: IGNORE,
        E.FAILED: IGNORE,
        E.DISCONNECT: S.DISCONNECTED,
        E.SOCKET_CLOSED: IGNORE,
    }


TRANSITIONS: Dict[ConnectionStatus, Dict[SessionEvent, Outcome]] = {
    S.IDLE: {
        E.CONNECT: S.CONNECTING,
        E.SOCKET_OPENED: REJECT,
        E.SESSION_READY: REJECT,
        E.SPEECH_STARTED: REJECT,
        E.SPEECH_STOPPED: REJECT,
        E.TRANSCRIPT_DONE: REJECT,
        E.AUDIO_DELTA: REJECT,
        E.AUDIO_DONE: REJECT,
        E.FAILED: S.ERROR,
        E.DISCONNECT: S.DISCONNECTED,
        E.SOCKET_CLOSED: IGNORE,
    },
    S.CONNECTING: {
        E.CONNECT: REJECT,
        E.SOCKET_OPENED: S.CONNECTED,
        E.SESSION_READY: IGNORE,
        E.SPEECH_STARTED: IGNORE,
        E.SPEECH_STOPPED: IGNORE,
        E.TRANSCRIPT_DONE: IGNORE,
        E.AUDIO_DELTA: IGNORE,
        E.AUDIO_DONE: IGNORE,
        E.FAILED: S.ERROR,
        E.DISCONNECT: S.DISCONNECTED,
        E.SOCKET_CLOSED: S.ERROR,
    },
    S.CONNECTED: _live_row(session_ready=S.LISTENING),
    S.LISTENING: _live_row(),
    S.USER_SPEAKING: _live_row(),
    S.AGENT_SPEAKING: _live_row(),
    S.PROCESSING: _live_row(),
    S.ERROR: _closed_row(),
    S.DISCONNECTED: {**_closed_row(), E.DISCONNECT: IGNORE},
}


def transition(status: ConnectionStatus, event: SessionEvent) -> ConnectionStatus:
    """
    Return the status that follows ``event`` in ``status``.

    Raises:
        InvalidTransitionError: If the pair is rejected
    """
    outcome = TRANSITIONS[status][event]
    if outcome is REJECT:
        raise InvalidTransitionError(
            f"Event '{event.value}' is not allowed while {status.value}",
            state=status.value,
            event=event.value,
        )
    if outcome is IGNORE:
        return status
    return outcome


def accepts(status: ConnectionStatus, event: SessionEvent) -> bool:
    return TRANSITIONS[status][event] is not REJECT


class SessionStateMachine:
    """
    Holds the current status and notifies a listener on every change.

    Args:
        on_change: Called with the new status after each actual change
    """

    def __init__(self, on_change: Optional[Callable[[ConnectionStatus], None]] = None):
        self.status = ConnectionStatus.IDLE
        self._on_change = on_change

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATES

    def can(self, event: SessionEvent) -> bool:
        return accepts(self.status, event)

    def dispatch(self, event: SessionEvent) -> bool:
        """Apply ``event``; returns True if the status changed."""
        new_status = transition(self.status, event)
        if new_status is self.status:
            return False

        logger.debug(f"Session status {self.status.value} -> {new_status.value} on {event.value}")
        self.status = new_status
        if self._on_change:
            self._on_change(new_status)
        return True
