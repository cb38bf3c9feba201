"""
Unit tests for the playback queue.
"""

import pytest

from roleplay.audio.playback import PlaybackQueue


@pytest.fixture
def queue(fake_output):
    return PlaybackQueue(fake_output)


def test_first_buffer_starts_immediately(queue, fake_output):
    queue.enqueue("A")

    assert queue.is_playing
    assert [unit.samples for unit in fake_output.units] == ["A"]
    assert queue.pending == 0


def test_buffers_play_in_arrival_order(queue, fake_output):
    queue.enqueue("A")
    queue.enqueue("B")
    queue.enqueue("C")
    assert queue.pending == 2

    fake_output.units[0].finish()
    fake_output.units[1].finish()
    fake_output.units[2].finish()

    assert [unit.samples for unit in fake_output.units] == ["A", "B", "C"]
    assert not queue.is_playing
    assert queue.current_unit is None


def test_flush_discards_queued_buffers(queue, fake_output):
    queue.enqueue("A")
    queue.enqueue("B")
    queue.enqueue("C")

    queue.flush()

    first = fake_output.units[0]
    assert first.stopped and first.disconnected
    assert not queue.has_audio
    assert len(fake_output.units) == 1


def test_flush_after_first_buffer_discards_the_rest(queue, fake_output):
    queue.enqueue("A")
    queue.enqueue("B")
    queue.enqueue("C")
    fake_output.units[0].finish()

    queue.flush()

    assert [unit.samples for unit in fake_output.units] == ["A", "B"]
    assert fake_output.units[1].stopped
    assert queue.pending == 0


def test_ended_callback_from_stopped_unit_is_ignored(queue, fake_output):
    queue.enqueue("A")
    queue.enqueue("B")
    stale = fake_output.units[0]
    queue.flush()

    stale.finish()

    assert len(fake_output.units) == 1
    assert not queue.is_playing


def test_flush_is_idempotent(queue, fake_output):
    queue.flush()
    queue.enqueue("A")
    queue.flush()
    queue.flush()

    assert not queue.has_audio


def test_flush_tolerates_unit_that_already_stopped(queue, fake_output):
    queue.enqueue("A")
    fake_output.units[0].stopped = True  # stop() now raises

    queue.flush()

    assert queue.current_unit is None
    assert not queue.is_playing


def test_playback_resumes_after_flush(queue, fake_output):
    queue.enqueue("A")
    queue.flush()
    queue.enqueue("D")

    assert fake_output.units[-1].samples == "D"
    assert queue.is_playing
