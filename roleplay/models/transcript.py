"""
Conversation and transcript state.

``ConversationLog`` records the finished messages of a realtime session
(user transcripts, agent replies, system notices). ``AvatarTranscript``
assembles the avatar conversation incrementally: text arrives in fragments
while someone is talking and an entry is finalised when that speaker's turn
ends.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):
    role: str
    content: str
    timestamp: datetime = Field(default_factory=_now)


class ConversationLog:
    """Ordered list of finished conversation messages."""

    def __init__(self):
        self.messages: List[ConversationMessage] = []

    def add(self, role: str, content: str) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def clear(self) -> None:
        self.messages.clear()

    def __len__(self) -> int:
        return len(self.messages)


class TranscriptEntry(BaseModel):
    """One speaker turn in the avatar transcript."""

    role: str
    text: str = ""
    timestamp: datetime = Field(default_factory=_now)
    final: bool = False


class AvatarTranscript:
    """
    Incrementally assembled transcript of an avatar conversation.

    Each speaker has at most one open entry. Fragments are appended to it,
    separated by a single space, and ``end_turn`` closes it. A closed entry
    is never modified again.
    """

    def __init__(self):
        self.entries: List[TranscriptEntry] = []

    def _open_entry(self, role: str) -> Optional[TranscriptEntry]:
        if self.entries:
            last = self.entries[-1]
            if last.role == role and not last.final:
                return last
        return None

    def start_turn(self, role: str) -> TranscriptEntry:
        """Open a new, empty entry for ``role``; an unfinished previous one is closed."""
        current = self._open_entry(role)
        if current is not None:
            current.final = True
        entry = TranscriptEntry(role=role)
        self.entries.append(entry)
        return entry

    def append(self, role: str, text: str) -> Optional[TranscriptEntry]:
        """Add a fragment to the speaker's open entry, opening one if needed."""
        if not text:
            return None
        entry = self._open_entry(role)
        if entry is None:
            entry = TranscriptEntry(role=role)
            self.entries.append(entry)
        entry.text = f"{entry.text} {text}" if entry.text else text
        return entry

    def end_turn(self, role: str) -> Optional[TranscriptEntry]:
        entry = self._open_entry(role)
        if entry is not None:
            entry.final = True
        return entry

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)
