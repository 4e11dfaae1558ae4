"""
Tests for the progress event bus — sequencing, observers, replay, streams.
"""

import threading

from toolwarden.core.models.event import (
    TOOL_CHECKING,
    TOOL_INSTALLED,
    TOOLS_DONE,
    ProgressEvent,
)
from toolwarden.core.services.event_bus import EventBus


class Collector:
    def __init__(self):
        self.events: list[ProgressEvent] = []

    def on_progress(self, event):
        self.events.append(event)


class Exploding:
    def on_progress(self, event):
        raise RuntimeError("observer bug")


class TestPublish:
    def test_sequence_is_monotonic(self):
        bus = EventBus()
        first = bus.publish(TOOL_CHECKING, key="gemini")
        second = bus.publish(TOOL_INSTALLED, key="gemini", data={"version": "1.0.0"})
        assert (first.seq, second.seq) == (1, 2)
        assert bus.seq == 2
        assert second.data == {"version": "1.0.0"}
        assert second.v == 1

    def test_observers_receive_events(self):
        collector = Collector()
        bus = EventBus([collector])
        bus.publish(TOOL_CHECKING, key="codex")
        assert [e.type for e in collector.events] == [TOOL_CHECKING]

    def test_failing_observer_is_isolated(self):
        collector = Collector()
        bus = EventBus([Exploding(), collector])
        event = bus.publish(TOOL_CHECKING, key="codex")
        assert event.seq == 1
        assert len(collector.events) == 1

    def test_add_remove_observer(self):
        collector = Collector()
        bus = EventBus()
        bus.add_observer(collector)
        bus.publish(TOOL_CHECKING, key="a")
        bus.remove_observer(collector)
        bus.remove_observer(collector)
        bus.publish(TOOL_CHECKING, key="b")
        assert [e.key for e in collector.events] == ["a"]


class TestReplay:
    def test_events_since(self):
        bus = EventBus()
        for name in ("a", "b", "c"):
            bus.publish(TOOL_CHECKING, key=name)
        assert [e.key for e in bus.events_since(1)] == ["b", "c"]
        assert bus.events_since(3) == []

    def test_buffer_is_bounded(self):
        bus = EventBus(buffer_size=2)
        for name in ("a", "b", "c"):
            bus.publish(TOOL_CHECKING, key=name)
        assert [e.key for e in bus.events_since(0)] == ["b", "c"]

    def test_snapshot_keeps_latest_per_tool(self):
        bus = EventBus()
        bus.publish(TOOL_CHECKING, key="gemini")
        bus.publish(TOOL_INSTALLED, key="gemini")
        bus.publish(TOOLS_DONE)
        snap = bus.snapshot()
        assert list(snap) == ["gemini"]
        assert snap["gemini"].type == TOOL_INSTALLED


class TestStream:
    def test_replays_backlog_until_done(self):
        bus = EventBus()
        bus.publish(TOOL_CHECKING, key="gemini")
        bus.publish(TOOLS_DONE)
        bus.publish(TOOL_CHECKING, key="codex")

        events = list(bus.stream(since=0, timeout=0.05))
        assert [e.type for e in events] == [TOOL_CHECKING, TOOLS_DONE]

    def test_live_only_by_default(self):
        bus = EventBus()
        bus.publish(TOOL_CHECKING, key="gemini")
        assert list(bus.stream(timeout=0.05)) == []

    def test_live_events_from_other_thread(self):
        bus = EventBus()
        received = []
        events = bus.stream(timeout=2)

        def consume():
            for event in events:
                received.append(event.type)

        consumer = threading.Thread(target=consume)
        consumer.start()
        bus.publish(TOOL_CHECKING, key="codex")
        bus.publish(TOOLS_DONE)
        consumer.join(timeout=5)

        assert received == [TOOL_CHECKING, TOOLS_DONE]
        assert bus._queues == []

    def test_full_stream_is_dropped(self):
        bus = EventBus(stream_queue_size=1)
        bus.stream()
        bus.publish(TOOL_CHECKING, key="a")
        bus.publish(TOOL_CHECKING, key="b")
        assert bus._queues == []
