from typing import Any, Dict, Optional


class RoleplayError(Exception):
    """Base exception for interview roleplay errors."""

    def __init__(self, message: str, status_code: int = 500, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ConfigurationError(RoleplayError):
    """Raised when a required secret or setting is missing."""
    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(message, status_code=500, payload={'setting': setting} if setting else None)


class TransportError(RoleplayError):
    """Raised when a socket or vendor connection fails."""
    def __init__(self, message: str, service: Optional[str] = None):
        super().__init__(message, status_code=502, payload={'service': service} if service else None)


class MicrophoneError(RoleplayError):
    """Raised when the microphone cannot be opened."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class FeedbackParseError(RoleplayError):
    """Raised when a feedback response has no decodable JSON object."""
    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class PlanGenerationError(RoleplayError):
    """Raised when the interview plan service rejects or fails a plan."""
    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message, status_code=502, payload={'session_id': session_id} if session_id else None)


class PlanPollingTimeout(PlanGenerationError):
    """Raised when polling gives up before the plan reaches a terminal status."""


class InvalidTransitionError(RoleplayError):
    """Raised when a session event is applied to a state that cannot accept it."""
    def __init__(self, message: str, state: Optional[str] = None, event: Optional[str] = None):
        super().__init__(message, status_code=409, payload={'state': state, 'event': event})
