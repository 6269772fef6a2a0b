"""Unit tests for the event bus.

These tests assert ordered delivery, failure isolation between listeners and
that a listener cannot alter what later listeners see.
"""

from __future__ import annotations

import pytest

from workflow_kernel.kernel.workflow.events import Event, EventBus


def test_delivery_order_matches_publish_order(bus: EventBus) -> None:
    seen: list[int] = []
    bus.subscribe("tick", lambda e: seen.append(e.payload["n"]))

    for n in range(5):
        bus.emit("tick", {"n": n})

    assert seen == [0, 1, 2, 3, 4]


def test_listeners_run_in_subscription_order(bus: EventBus) -> None:
    calls: list[str] = []
    bus.subscribe("tick", lambda _e: calls.append("first"))
    bus.subscribe("tick", lambda _e: calls.append("second"))

    bus.emit("tick")

    assert calls == ["first", "second"]


def test_ordinals_increase_with_each_emission(bus: EventBus) -> None:
    first = bus.emit("a").event
    second = bus.emit("b").event
    assert second.ordinal > first.ordinal


def test_failing_listener_does_not_stop_delivery(bus: EventBus) -> None:
    received: list[Event] = []

    def broken(_event: Event) -> None:
        raise RuntimeError("listener exploded")

    bus.subscribe("state-changed", broken)
    bus.subscribe("state-changed", received.append)

    result = bus.emit("state-changed", {"to": "moderation"})

    assert len(received) == 1
    assert result.delivered == 2
    assert not result.ok
    assert len(result.errors) == 1
    assert isinstance(result.errors[0].error, RuntimeError)
    assert bus.listener_errors == result.errors


def test_listener_error_log_is_bounded() -> None:
    bus = EventBus(error_log_size=2)

    def broken(_event: Event) -> None:
        raise ValueError("nope")

    bus.subscribe("x", broken)
    for _ in range(5):
        bus.emit("x")

    assert len(bus.listener_errors) == 2
    bus.clear_listener_errors()
    assert bus.listener_errors == ()


def test_duplicate_subscription_is_a_noop(bus: EventBus) -> None:
    calls: list[Event] = []

    first = bus.subscribe("tick", calls.append)
    second = bus.subscribe("tick", calls.append)
    bus.emit("tick")

    assert first == second
    assert len(bus.subscriptions) == 1
    assert len(calls) == 1


def test_explicit_subscriber_identity_deduplicates(bus: EventBus) -> None:
    calls: list[str] = []

    bus.subscribe("tick", lambda _e: calls.append("a"), subscriber="audit")
    bus.subscribe("tick", lambda _e: calls.append("b"), subscriber="audit")
    bus.subscribe("tock", lambda _e: calls.append("c"), subscriber="audit")
    bus.emit("tick")

    assert calls == ["a"]
    assert len(bus.subscriptions) == 2


def test_unsubscribe_is_idempotent(bus: EventBus) -> None:
    calls: list[Event] = []
    handle = bus.subscribe("tick", calls.append)

    assert bus.unsubscribe(handle) is True
    assert bus.unsubscribe(handle) is False

    bus.emit("tick")
    assert calls == []


def test_late_subscriber_does_not_receive_past_events(bus: EventBus) -> None:
    bus.emit("tick", {"n": 1})

    calls: list[Event] = []
    bus.subscribe("tick", calls.append)
    bus.emit("tick", {"n": 2})

    assert [e.payload["n"] for e in calls] == [2]


def test_publish_uses_a_snapshot_of_listeners(bus: EventBus) -> None:
    late: list[Event] = []
    handles = {}

    def subscribes_another(_event: Event) -> None:
        bus.subscribe("tick", late.append)

    def removes_next(_event: Event) -> None:
        bus.unsubscribe(handles["victim"])

    victim_calls: list[Event] = []
    bus.subscribe("tick", subscribes_another)
    bus.subscribe("tick", removes_next)
    handles["victim"] = bus.subscribe("tick", victim_calls.append)

    bus.emit("tick")

    # The listener added mid-flight misses this event; the one removed
    # mid-flight still gets it.
    assert late == []
    assert len(victim_calls) == 1

    bus.emit("tick")
    assert len(late) == 1
    assert len(victim_calls) == 1


def test_wildcard_filters(bus: EventBus) -> None:
    everything: list[str] = []
    state_only: list[str] = []
    bus.subscribe("*", lambda e: everything.append(e.name))
    bus.subscribe("state-*", lambda e: state_only.append(e.name))

    bus.emit("state-changed")
    bus.emit("lifecycle-changed")

    assert everything == ["state-changed", "lifecycle-changed"]
    assert state_only == ["state-changed"]


def test_listener_cannot_mutate_payload_for_later_listeners(bus: EventBus) -> None:
    later: list[Event] = []

    def vandal(event: Event) -> None:
        event.payload["to"] = "hacked"  # type: ignore[index]

    def nested_vandal(event: Event) -> None:
        event.payload["meta"]["tags"].append("x")  # type: ignore[index]

    bus.subscribe("state-changed", vandal)
    bus.subscribe("state-changed", nested_vandal)
    bus.subscribe("state-changed", later.append)

    original = {"to": "published", "meta": {"tags": ["a"]}}
    result = bus.emit("state-changed", original)

    assert len(result.errors) == 2
    assert later[0].payload["to"] == "published"
    assert later[0].payload["meta"]["tags"] == ("a",)  # type: ignore[index]
    # The caller's own dict is not shared with the event either.
    original["to"] = "changed"
    assert later[0].payload["to"] == "published"


def test_events_are_frozen(bus: EventBus) -> None:
    event = bus.emit("tick").event
    with pytest.raises(AttributeError):
        event.name = "tock"  # type: ignore[misc]


def test_published_event_built_by_caller_is_frozen(bus: EventBus) -> None:
    later: list[object] = []

    def vandal(event: Event) -> None:
        event.payload["to"] = "hacked"  # type: ignore[index]

    bus.subscribe("state-changed", vandal)
    bus.subscribe("state-changed", lambda e: later.append(e.payload["to"]))

    result = bus.publish(Event(name="state-changed", payload={"to": "published"}, ordinal=1))

    assert later == ["published"]
    assert len(result.errors) == 1
    assert isinstance(result.errors[0].error, TypeError)
