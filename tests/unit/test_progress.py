"""Unit tests for the progress channel."""

import pytest

from utils.progress import ProgressChannel


@pytest.mark.unit
def test_observers_receive_events_in_order():
    received = []
    channel = ProgressChannel([lambda e: received.append(("a", e.message))])
    channel.subscribe(lambda e: received.append(("b", e.message)))

    channel.emit("Scene 1: submitting", scene_id="s1")

    assert received == [("a", "Scene 1: submitting"), ("b", "Scene 1: submitting")]
    assert channel.history[0].scene_id == "s1"


@pytest.mark.unit
def test_failing_observer_does_not_stop_others():
    received = []

    def broken(event):
        raise RuntimeError("observer crashed")

    channel = ProgressChannel([broken, lambda e: received.append(e.message)])
    channel.emit("still delivered")

    assert received == ["still delivered"]


@pytest.mark.unit
def test_warnings_are_flagged():
    channel = ProgressChannel()
    channel.emit("normal")
    channel.warn("Narration skipped")

    assert channel.warnings == ["Narration skipped"]
    assert channel.history[1].warning is True
    assert channel.history[1].to_dict()["warning"] is True


@pytest.mark.unit
def test_explicit_elapsed_and_unsubscribe():
    received = []

    def observer(event):
        received.append(event)

    channel = ProgressChannel([observer])
    channel.emit("Processing... (30s)", elapsed_seconds=30.0)
    channel.unsubscribe(observer)
    channel.emit("unseen")

    assert len(received) == 1
    assert received[0].elapsed_seconds == 30.0


@pytest.mark.unit
def test_reset_clears_history():
    channel = ProgressChannel()
    channel.warn("something")
    channel.reset()
    assert channel.history == []
    assert channel.warnings == []
