"""
Tests for the event bus.
"""

import gc

from launchgrid.services.event_bus import EventBus
from launchgrid.services.interfaces import Events


class Listener:
    def __init__(self):
        self.received = []

    def on_event(self, data):
        self.received.append(data)


class TestSubscriptions:
    def test_bound_method_receives_events(self, memory_logger):
        bus = EventBus(memory_logger)
        listener = Listener()
        bus.subscribe(Events.ICON_RESOLVED, listener.on_event)
        bus.publish(Events.ICON_RESOLVED, {"key": "/Apps/Mail.app"})
        assert listener.received == [{"key": "/Apps/Mail.app"}]

    def test_handler_without_data(self, memory_logger):
        bus = EventBus(memory_logger)
        calls = []

        def handler():
            calls.append(True)

        bus.subscribe("ping", handler)
        bus.publish("ping")
        assert calls == [True]

    def test_dead_listener_is_dropped(self, memory_logger):
        bus = EventBus(memory_logger)
        listener = Listener()
        bus.subscribe(Events.ICON_MISSING, listener.on_event)
        assert bus.get_subscriber_count(Events.ICON_MISSING) == {Events.ICON_MISSING: 1}
        del listener
        gc.collect()
        bus.publish(Events.ICON_MISSING, {"key": "x"})
        assert bus.get_subscriber_count(Events.ICON_MISSING) == {Events.ICON_MISSING: 0}

    def test_unsubscribe(self, memory_logger):
        bus = EventBus(memory_logger)
        listener = Listener()
        bus.subscribe(Events.ICON_FETCH_STARTED, listener.on_event)
        bus.unsubscribe(Events.ICON_FETCH_STARTED, listener.on_event)
        bus.publish(Events.ICON_FETCH_STARTED, {"key": "x"})
        assert listener.received == []

    def test_non_callable_rejected(self, memory_logger):
        bus = EventBus(memory_logger)
        bus.subscribe("ping", "not callable")
        assert bus.get_subscriber_count() == {}
        assert memory_logger.get_entries("ERROR")


class TestPublishing:
    def test_failing_handler_does_not_block_others(self, memory_logger):
        bus = EventBus(memory_logger)
        listener = Listener()

        def broken(data):
            raise RuntimeError("boom")

        bus.subscribe("ping", broken)
        bus.subscribe("ping", listener.on_event)
        bus.publish("ping", 1)
        assert listener.received == [1]
        assert len(memory_logger.get_entries("ERROR")) == 1

    def test_history_is_bounded(self, memory_logger):
        bus = EventBus(memory_logger, max_history=3)
        for i in range(5):
            bus.publish("tick", i)
        assert [e.data for e in bus.get_event_history()] == [2, 3, 4]
        assert [e.data for e in bus.get_event_history("tick", limit=1)] == [4]
        bus.clear_history()
        assert bus.get_event_history() == []

    def test_disabled_bus_is_silent(self, memory_logger):
        bus = EventBus(memory_logger)
        listener = Listener()
        bus.subscribe("ping", listener.on_event)
        bus.disable()
        bus.publish("ping", 1)
        assert not bus.is_enabled()
        assert listener.received == []
        assert bus.get_event_history() == []
        bus.enable()
        bus.publish("ping", 2)
        assert listener.received == [2]
