import asyncio
import json
import logging

import pytest

from roleplay.config.settings import AgentSettings


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture(autouse=True)
def isolated_settings_path(tmp_path, monkeypatch):
    """Keep settings files out of the user's home directory."""
    path = tmp_path / "settings.json"
    monkeypatch.setenv("ROLEPLAY_SETTINGS_PATH", str(path))
    return path


class FakeUnit:
    """Playback unit that finishes only when the test says so."""

    def __init__(self, samples, on_ended):
        self.samples = samples
        self.on_ended = on_ended
        self.stopped = False
        self.disconnected = False

    def stop(self):
        if self.stopped:
            raise RuntimeError("already stopped")
        self.stopped = True

    def disconnect(self):
        self.disconnected = True

    def finish(self):
        self.on_ended(self)


class FakeOutput:
    def __init__(self):
        self.units = []
        self.closed = False

    def play(self, samples, on_ended):
        unit = FakeUnit(samples, on_ended)
        self.units.append(unit)
        return unit

    def close(self):
        self.closed = True


class FakeMicrophone:
    """Yields the given blocks, then waits until closed."""

    def __init__(self, blocks=(), fail_with=None):
        self._blocks = list(blocks)
        self.fail_with = fail_with
        self.opened = False
        self.closed = False

    def open(self):
        if self.fail_with:
            raise self.fail_with
        self.opened = True

    async def blocks(self):
        for block in self._blocks:
            yield block
        while not self.closed:
            await asyncio.sleep(0.01)

    def close(self):
        self.closed = True


class FakeSocket:
    """Realtime socket replaying scripted server messages."""

    def __init__(self, messages=(), keep_open=True):
        self.sent = []
        self.closed = False
        self._incoming = asyncio.Queue()
        for message in messages:
            self.feed(message)
        if not keep_open:
            self._incoming.put_nowait(None)

    def feed(self, message):
        self._incoming.put_nowait(json.dumps(message) if isinstance(message, dict) else message)

    def end(self):
        self._incoming.put_nowait(None)

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self._incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message

    def sent_types(self):
        return [message["type"] for message in self.sent]


@pytest.fixture
def fake_output():
    return FakeOutput()


@pytest.fixture
def fake_microphone():
    return FakeMicrophone()


@pytest.fixture
def agent_settings():
    return AgentSettings(voice="echo", instructions="Ask about Python.", agent_starts_conversation=False)
