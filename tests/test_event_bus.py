"""Tests for the event bus."""

from underworld.state.event_bus import (
    EventBus,
    EventType,
    get_event_bus,
    publish_activity,
    reset_event_bus,
)
from underworld.state.schema import ActionKind, ActivityEvent


class TestEventBus:
    """Test subscribe and emit."""

    def test_emit_calls_listener(self):
        bus = EventBus()
        received = []
        bus.on(EventType.JOB_COMPLETED, received.append)

        event = bus.emit(EventType.JOB_COMPLETED, agent_id="a1", cash_earned=200)

        assert received == [event]
        assert event.data == {"cash_earned": 200}
        assert event.agent_id == "a1"

    def test_other_types_ignored(self):
        bus = EventBus()
        received = []
        bus.on(EventType.JOB_COMPLETED, received.append)
        bus.emit(EventType.JOB_FAILED)
        assert received == []

    def test_off(self):
        bus = EventBus()
        received = []
        bus.on(EventType.ACTIVITY, received.append)
        bus.off(EventType.ACTIVITY, received.append)
        bus.emit(EventType.ACTIVITY)
        assert received == []
        assert bus.listener_count(EventType.ACTIVITY) == 0

    def test_failing_listener_is_isolated(self):
        """A broken listener never breaks the emitter or other listeners."""
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        bus.on(EventType.ACTIVITY, broken)
        bus.on(EventType.ACTIVITY, received.append)
        bus.emit(EventType.ACTIVITY)

        assert len(received) == 1

    def test_history_limit(self):
        bus = EventBus(history_limit=3)
        for i in range(5):
            bus.emit(EventType.TICK_COMPLETED, n=i)
        assert [e.data["n"] for e in bus.get_history()] == [2, 3, 4]


class TestGlobalBus:
    """Test the singleton helpers."""

    def test_singleton(self):
        assert get_event_bus() is get_event_bus()

    def test_reset(self):
        first = get_event_bus()
        reset_event_bus()
        assert get_event_bus() is not first

    def test_publish_activity_is_json_ready(self, now):
        activity = ActivityEvent(
            agent_display_name="Vito",
            action_kind=ActionKind.FIGHT,
            result_text="Defeated Sal!",
            rewards={"cash": "+$100"},
            created_at=now,
        )
        event = publish_activity(activity, agent_id="a1")

        assert event.type == EventType.ACTIVITY
        assert event.data == {
            "agent_display_name": "Vito",
            "action_kind": "fight",
            "result_text": "Defeated Sal!",
            "rewards": {"cash": "+$100"},
            "created_at": now.isoformat(),
        }
        assert str(activity) == "Vito: Defeated Sal! (cash: +$100)"
