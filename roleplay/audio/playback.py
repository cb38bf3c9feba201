"""
Ordered playback of synthesized speech with interruption support.

Decoded audio deltas are queued and handed to an output device one buffer at a
time. When a buffer finishes, the next one starts automatically. An
interruption clears the queue and stops the buffer that is currently playing.
"""

import logging
from collections import deque
from typing import Any, Callable, Deque, Optional

from roleplay.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# Called by an output device with the unit that just finished
EndedCallback = Callable[[Any], None]


class PlaybackQueue:
    """
    FIFO of audio buffers with at most one buffer playing.

    The output object must provide ``play(samples, on_ended)`` returning a unit
    with ``stop()`` and ``disconnect()``; the device calls ``on_ended(unit)``
    when the unit finishes on its own.
    """

    def __init__(self, output):
        self.output = output
        self._queue: Deque[Any] = deque()
        self.current_unit: Optional[Any] = None
        self.is_playing = False

    @property
    def pending(self) -> int:
        """Number of buffers waiting behind the current one."""
        return len(self._queue)

    @property
    def has_audio(self) -> bool:
        return self.is_playing or bool(self._queue)

    def enqueue(self, samples) -> None:
        self._queue.append(samples)
        if not self.is_playing:
            self._play_next()

    def _play_next(self) -> None:
        if not self._queue:
            self.is_playing = False
            self.current_unit = None
            return

        self.is_playing = True
        samples = self._queue.popleft()
        self.current_unit = self.output.play(samples, self._on_unit_ended)

    def _on_unit_ended(self, unit) -> None:
        # A unit stopped by flush() may still report its end; ignore it
        if unit is not self.current_unit:
            return
        self.current_unit = None
        self._play_next()

    def flush(self) -> None:
        """Stop the playing unit and drop everything queued."""
        unit = self.current_unit
        self.current_unit = None
        if unit is not None:
            try:
                unit.stop()
                unit.disconnect()
            except Exception as e:
                # Already stopped
                logger.debug(f"Ignoring error while stopping playback unit: {e}")

        dropped = len(self._queue)
        self._queue.clear()
        self.is_playing = False
        if dropped:
            logger.debug(f"Dropped {dropped} queued audio buffers")
