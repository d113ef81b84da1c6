# RunController linking control commands to a construction session
# src/monitoring/controller.py
"""
Control surface for construction runs.

RunController listens for ControlCommand messages on the EventBus and maps
them onto a ConstructionSession's interrupt signal.

Supported commands (ControlCommandType):
- CANCEL_RUN   -> set the interrupt (long-running primitives stop early)
- RESET_CANCEL -> clear it again
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Protocol

from .bus import EventBus
from .events import ControlCommand, ControlCommandType, EventType
from .logger import log_event


class InterruptibleSession(Protocol):
    """What the controller needs from a session."""

    interrupt: threading.Event
    run_id: str


class RunController:
    """
    Control surface for one construction session.

    The controller never touches the bridge; primitives poll the interrupt
    at their own safe points.
    """

    def __init__(self, bus: EventBus, session: InterruptibleSession) -> None:
        self._bus = bus
        self._session = session
        self._bus.subscribe_commands(self._handle_command)

    @property
    def cancelled(self) -> bool:
        return self._session.interrupt.is_set()

    def close(self) -> None:
        """Stop listening for commands."""
        self._bus.unsubscribe_commands(self._handle_command)

    # --------------------------------------------------------
    # Command handling
    # --------------------------------------------------------

    def _handle_command(self, cmd: ControlCommand) -> None:
        if cmd.cmd == ControlCommandType.CANCEL_RUN:
            self._session.interrupt.set()
            self._log_control("CANCEL_RUN", {"reason": cmd.args.get("reason", "")})

        elif cmd.cmd == ControlCommandType.RESET_CANCEL:
            self._session.interrupt.clear()
            self._log_control("RESET_CANCEL", {})

    def _log_control(self, cmd_name: str, payload: Dict[str, Any]) -> None:
        log_event(
            bus=self._bus,
            module="monitoring.controller",
            event_type=EventType.CONTROL_COMMAND,
            message=f"Control command: {cmd_name}",
            payload={"cmd": cmd_name, **payload},
            correlation_id=self._session.run_id,
        )
