"""
PCM16 and base64 conversions for realtime audio.

Microphone samples arrive as floating point values in [-1, 1]; the Realtime API
exchanges little-endian signed 16-bit PCM wrapped in base64 text. Every
function here is pure and stateless.
"""

import base64
import binascii

import numpy as np

from roleplay.config.constants import PCM16_NEGATIVE_SCALE, PCM16_POSITIVE_SCALE


def float_to_pcm16(samples) -> np.ndarray:
    """Convert float samples to signed 16-bit PCM.

    Samples are clamped to [-1, 1] first; negative values scale by 0x8000 and
    positive values by 0x7FFF, truncating toward zero.
    """
    clamped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * PCM16_NEGATIVE_SCALE, clamped * PCM16_POSITIVE_SCALE)
    return np.trunc(scaled).astype("<i2")


def pcm16_to_float(pcm) -> np.ndarray:
    """Inverse of :func:`float_to_pcm16`."""
    values = np.asarray(pcm, dtype=np.int16).astype(np.float32)
    return np.where(values < 0, values / PCM16_NEGATIVE_SCALE, values / PCM16_POSITIVE_SCALE).astype(np.float32)


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def base64_to_bytes(text: str) -> bytes:
    """Decode base64 text, raising ValueError on malformed input."""
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 audio data: {e}") from e


def encode_audio_block(samples) -> str:
    """Float samples to base64 PCM16 text, as sent in an append event."""
    return bytes_to_base64(float_to_pcm16(samples).tobytes())


def decode_audio_delta(text: str) -> np.ndarray:
    """Base64 PCM16 text, as received in an audio delta, to float samples.

    A trailing odd byte is dropped.
    """
    raw = base64_to_bytes(text)
    usable = len(raw) - (len(raw) % 2)
    return pcm16_to_float(np.frombuffer(raw[:usable], dtype="<i2"))
