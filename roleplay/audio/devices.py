"""
PyAudio-backed microphone capture and speaker playback.

The microphone yields fixed-size blocks of float32 samples; the speaker turns
each queued buffer into a playback unit that can be stopped mid-way. Blocking
PyAudio reads and writes run in the default executor so the event loop keeps
dispatching socket messages.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import numpy as np
import pyaudio

from roleplay.config.constants import CAPTURE_BLOCK_SIZE, CHANNELS, LOGGER_NAME, SAMPLE_RATE
from roleplay.errors import MicrophoneError

logger = logging.getLogger(LOGGER_NAME)

PLAYBACK_CHUNK_FRAMES = 1024


@dataclass(frozen=True)
class CaptureConstraints:
    """Microphone parameters requested for a realtime session."""

    channel_count: int = CHANNELS
    sample_rate: int = SAMPLE_RATE
    echo_cancellation: bool = True
    noise_suppression: bool = True
    block_size: int = CAPTURE_BLOCK_SIZE


class Microphone:
    """Mono float32 microphone stream read in fixed-size blocks."""

    def __init__(self, constraints: Optional[CaptureConstraints] = None):
        self.constraints = constraints or CaptureConstraints()
        self._pa = None
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        """Open the default input device.

        Raises:
            MicrophoneError: If the device is missing or access is denied
        """
        c = self.constraints
        try:
            self._pa = pyaudio.PyAudio()
            self._stream = self._pa.open(
                format=pyaudio.paFloat32,
                channels=c.channel_count,
                rate=c.sample_rate,
                input=True,
                frames_per_buffer=c.block_size,
            )
        except OSError as e:
            self.close()
            raise MicrophoneError(f"Microphone access failed: {e}") from e

        # Echo cancellation and noise suppression are left to the OS audio stack
        logger.info(
            f"Microphone opened: {c.channel_count} channel(s) at {c.sample_rate} Hz, "
            f"{c.block_size} samples per block"
        )

    async def read_block(self) -> np.ndarray:
        stream = self._stream
        if stream is None:
            raise MicrophoneError("Microphone is not open")
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(
            None, lambda: stream.read(self.constraints.block_size, exception_on_overflow=False)
        )
        return np.frombuffer(data, dtype=np.float32)

    async def blocks(self) -> AsyncIterator[np.ndarray]:
        """Yield blocks until the microphone is closed."""
        while self._stream is not None:
            yield await self.read_block()

    def close(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning(f"Error closing microphone stream: {e}")
            self._stream = None
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None


class SpeakerUnit:
    """One buffer being written to the speaker."""

    def __init__(self, stream, samples: np.ndarray, on_ended):
        self._stream = stream
        self._samples = np.asarray(samples, dtype=np.float32)
        self._on_ended = on_ended
        self.stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        for start in range(0, len(self._samples), PLAYBACK_CHUNK_FRAMES):
            if self.stopped or self._stream is None:
                return
            chunk = self._samples[start:start + PLAYBACK_CHUNK_FRAMES].tobytes()
            await loop.run_in_executor(None, self._stream.write, chunk)
        if not self.stopped:
            self._on_ended(self)

    def stop(self) -> None:
        self.stopped = True
        if not self._task.done():
            self._task.cancel()

    def disconnect(self) -> None:
        self._stream = None


class Speaker:
    """Mono float32 output device at the realtime sample rate."""

    def __init__(self, sample_rate: int = SAMPLE_RATE):
        self.sample_rate = sample_rate
        self._pa = None
        self._stream = None

    def open(self) -> None:
        self._pa = pyaudio.PyAudio()
        self._stream = self._pa.open(
            format=pyaudio.paFloat32,
            channels=CHANNELS,
            rate=self.sample_rate,
            output=True,
            frames_per_buffer=PLAYBACK_CHUNK_FRAMES,
        )

    def play(self, samples, on_ended) -> SpeakerUnit:
        if self._stream is None:
            self.open()
        return SpeakerUnit(self._stream, samples, on_ended)

    def close(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning(f"Error closing speaker stream: {e}")
            self._stream = None
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None
