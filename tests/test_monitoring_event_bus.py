# tests/test_monitoring_event_bus.py
"""
Tests for monitoring.bus.EventBus

Covers:
- Publish/subscribe ordering
- Unsubscribe
- A failing subscriber does not starve the others
- Command handlers
- Commands posted mid-delivery are queued, then delivered in order
- Basic thread-safety smoke check
"""

from __future__ import annotations

import threading
from typing import List

from monitoring.bus import EventBus
from monitoring.events import ControlCommand, ControlCommandType, EventType, MonitoringEvent


def make_event(ts: float, msg: str = "msg") -> MonitoringEvent:
    return MonitoringEvent(
        ts=ts,
        module="test",
        event_type=EventType.LOG,
        message=msg,
        payload={},
        correlation_id=None,
    )


def test_publish_preserves_order():
    bus = EventBus()
    seen: List[int] = []
    bus.subscribe(lambda evt: seen.append(int(evt.ts)))

    for ts in [1, 2, 3, 4, 5]:
        bus.publish(make_event(float(ts)))

    assert seen == [1, 2, 3, 4, 5]


def test_unsubscribe():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    bus.subscribe(received.append)
    bus.unsubscribe(received.append)
    bus.publish(make_event(1.0))

    assert received == []


def test_failing_subscriber_is_isolated():
    bus = EventBus()
    received: List[str] = []

    def broken(evt: MonitoringEvent) -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe(broken)
    bus.subscribe(lambda evt: received.append(evt.message))

    bus.publish(make_event(1.0, "still delivered"))

    assert received == ["still delivered"]


def test_command_handlers_receive_commands():
    bus = EventBus()
    seen: List[ControlCommandType] = []
    bus.subscribe_commands(lambda cmd: seen.append(cmd.cmd))

    bus.publish_command(ControlCommand.cancel_run("x"))
    bus.clear()
    bus.publish_command(ControlCommand.reset_cancel())

    assert seen == [ControlCommandType.CANCEL_RUN]


def test_posted_commands_wait_for_dispatch():
    bus = EventBus()
    seen: List[ControlCommandType] = []
    bus.subscribe_commands(lambda cmd: seen.append(cmd.cmd))

    bus.post_command(ControlCommand.cancel_run("x"))
    assert seen == []

    assert bus.dispatch_pending() == 1
    assert seen == [ControlCommandType.CANCEL_RUN]
    assert bus.dispatch_pending() == 0


def test_publish_delivers_commands_posted_by_a_subscriber():
    bus = EventBus()
    order: List[str] = []

    def interrupting(evt: MonitoringEvent) -> None:
        order.append("event")
        bus.post_command(ControlCommand.cancel_run("signal"))
        order.append("posted")

    bus.subscribe(interrupting)
    bus.subscribe_commands(lambda cmd: order.append(cmd.cmd.name))

    bus.publish(make_event(1.0))

    assert order == ["event", "posted", "CANCEL_RUN"]


def test_commands_posted_during_dispatch_are_not_lost():
    bus = EventBus()
    seen: List[str] = []
    events: List[str] = []
    bus.subscribe(lambda evt: events.append(evt.message))

    def handler(cmd: ControlCommand) -> None:
        seen.append(cmd.cmd.name)
        if cmd.cmd == ControlCommandType.CANCEL_RUN:
            # Re-entrant use while this dispatch is running.
            bus.publish(make_event(2.0, "cancel logged"))
            bus.publish_command(ControlCommand.reset_cancel())
            seen.append("handler done")

    bus.subscribe_commands(handler)
    bus.publish_command(ControlCommand.cancel_run())

    assert seen == ["CANCEL_RUN", "handler done", "RESET_CANCEL"]
    assert events == ["cancel logged"]


def test_event_bus_thread_safety_smoke():
    bus = EventBus()
    count = 100
    received: List[MonitoringEvent] = []
    lock = threading.Lock()

    def subscriber(evt: MonitoringEvent) -> None:
        with lock:
            received.append(evt)

    bus.subscribe(subscriber)

    def publisher_thread(start: int) -> None:
        for i in range(start, start + count):
            bus.publish(make_event(float(i)))

    threads = [
        threading.Thread(target=publisher_thread, args=(0,)),
        threading.Thread(target=publisher_thread, args=(1000,)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(received) == 2 * count
