"""
Audio module for realtime voice sessions.

Key components:
- codec: Pure conversions between float samples, PCM16 and base64 text.
- playback: PlaybackQueue, the ordered player with interruption support.
- devices: PyAudio microphone and speaker (install the ``audio`` extra).

``devices`` is not imported here so the codec and the playback queue can be
used without PortAudio installed.
"""
