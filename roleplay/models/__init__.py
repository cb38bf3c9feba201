"""
Models module for data structures and state in the interview roleplay application.

Key components:
- realtime_schemas: Pydantic models for the OpenAI Realtime API messages the
  session sends and inspects.
- feedback: Feedback records (generated and fallback variants) and the relay
  request body.
- plan: Responses of the external interview plan service.
- transcript: The realtime conversation log and the incrementally assembled
  avatar transcript.

Usage examples:
```python
from roleplay.models.realtime_schemas import SessionConfig, SessionUpdateMessage, outbound

message = SessionUpdateMessage(session=SessionConfig(instructions="Be brief.", voice="alloy"))
await websocket.send(json.dumps(outbound(message)))

from roleplay.models.transcript import AvatarTranscript

transcript = AvatarTranscript()
transcript.start_turn("user")
transcript.append("user", "Hello")
transcript.end_turn("user")
```
"""

from roleplay.models.feedback import (
    FallbackFeedback,
    FeedbackRecord,
    FeedbackRequest,
    FeedbackResult,
    GeneratedFeedback,
)
from roleplay.models.plan import PlanStatus, PlanSubmission
from roleplay.models.realtime_schemas import MessageRole, SessionConfig
from roleplay.models.transcript import AvatarTranscript, ConversationLog, TranscriptEntry

__all__ = [
    "AvatarTranscript",
    "ConversationLog",
    "FallbackFeedback",
    "FeedbackRecord",
    "FeedbackRequest",
    "FeedbackResult",
    "GeneratedFeedback",
    "MessageRole",
    "PlanStatus",
    "PlanSubmission",
    "SessionConfig",
    "TranscriptEntry",
]
