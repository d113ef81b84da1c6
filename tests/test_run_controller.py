# tests/test_run_controller.py
"""
Tests for monitoring.controller.RunController.

Covers:
- CANCEL_RUN sets the session interrupt, RESET_CANCEL clears it
- Control actions are logged as CONTROL_COMMAND events
- A cancelled session stops a running jump
- close() detaches the controller
"""

from __future__ import annotations

from typing import List

from bridge.testing.fakes import FakeBridge
from construction.frame import ConstructionSession
from construction.primitives import ActionPrimitives
from monitoring.bus import EventBus
from monitoring.controller import RunController
from monitoring.events import ControlCommand, EventType, MonitoringEvent
from spec.types import FailureKind


def make(bus: EventBus):
    session = ConstructionSession(FakeBridge(), bus=bus, run_id="run-7")
    return session, RunController(bus, session)


def test_cancel_and_reset() -> None:
    bus = EventBus()
    events: List[MonitoringEvent] = []
    bus.subscribe(events.append)
    session, controller = make(bus)

    bus.publish_command(ControlCommand.cancel_run("operator"))
    assert session.interrupt.is_set()
    assert controller.cancelled

    bus.publish_command(ControlCommand.reset_cancel())
    assert not session.interrupt.is_set()

    control = [e for e in events if e.event_type == EventType.CONTROL_COMMAND]
    assert [e.payload["cmd"] for e in control] == ["CANCEL_RUN", "RESET_CANCEL"]
    assert control[0].payload["reason"] == "operator"
    assert control[0].correlation_id == "run-7"


def test_cancel_interrupts_jump() -> None:
    bus = EventBus()
    session, _ = make(bus)

    bus.publish_command(ControlCommand.cancel_run())
    result = ActionPrimitives(session).jump_for(5000)

    assert result.error is FailureKind.INTERRUPTED
    assert result.details["elapsed_ms"] == 0


def test_close_stops_listening() -> None:
    bus = EventBus()
    session, controller = make(bus)

    controller.close()
    bus.publish_command(ControlCommand.cancel_run())

    assert not session.interrupt.is_set()
