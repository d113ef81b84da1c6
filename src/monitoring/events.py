# path: src/monitoring/events.py
"""
Event and command schemas for construction monitoring.

This module defines:
- MonitoringEvent (structured run events)
- EventType enum
- ControlCommandType enum
- ControlCommand for human/system-issued controls

All events are JSON-serializable via `.to_dict()` and are intended
for use with monitoring.bus.EventBus and monitoring.logger.JsonFileLogger.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum, auto
from typing import Any, Dict, Optional


# ============================================================
# Event Types
# ============================================================

class EventType(Enum):
    """Typed monitoring events emitted during a construction run."""

    # Blueprint run lifecycle
    RUN_STARTED = auto()
    STEP_EXECUTED = auto()
    RUN_FINISHED = auto()

    # Control surface events
    CONTROL_COMMAND = auto()

    # Narration from primitives (decisions, retries, skips)
    LOG = auto()


# ============================================================
# Monitoring Event Structure
# ============================================================

@dataclass
class MonitoringEvent:
    """
    Runtime event emitted by the runner, a primitive, or the control surface.

    All fields must be JSON-safe.
    """

    ts: float                   # UNIX timestamp (seconds)
    module: str                 # Source module string ("construction.runner", ...)
    event_type: EventType       # Enum describing the event class
    message: str                # Short human-readable description
    payload: Dict[str, Any]     # Structured data (step, outcome, offsets)
    correlation_id: Optional[str] = None  # Groups events per run

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict for loggers."""
        data = asdict(self)
        data["event_type"] = self.event_type.name  # store name, not enum
        return data


# ============================================================
# Control Commands
# ============================================================

class ControlCommandType(Enum):
    """Commands that humans or tools can send to a running build."""

    CANCEL_RUN = auto()     # Raise the session interrupt signal
    RESET_CANCEL = auto()   # Clear it again before the next run


@dataclass
class ControlCommand:
    """
    Represents an external command for a construction session.

    Sent through EventBus.publish_command(), then interpreted by
    monitoring.controller.RunController.
    """

    cmd: ControlCommandType             # The specific command
    args: Dict[str, Any]                # Additional arguments for command execution

    @staticmethod
    def cancel_run(reason: str = "") -> "ControlCommand":
        return ControlCommand(ControlCommandType.CANCEL_RUN, {"reason": reason})

    @staticmethod
    def reset_cancel() -> "ControlCommand":
        return ControlCommand(ControlCommandType.RESET_CANCEL, {})
