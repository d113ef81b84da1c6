# JSON logger subscribing to EventBus
"""
Structured run logging.

Provides:
- JsonFileLogger: subscribes to an EventBus and writes MonitoringEvents as JSONL.
- log_event: convenience helper for publishing MonitoringEvents via the EventBus.

A build narrates every decision (placed, retried, skipped, failed), so the
JSONL file is the post-hoc record of what a run actually did:

    bus = EventBus()
    sink = JsonFileLogger(Path("logs/monitoring/events.log"), bus)
    ...
    sink.close()
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .bus import EventBus
from .events import EventType, MonitoringEvent

log = logging.getLogger(__name__)


class JsonFileLogger:
    """
    JSON-lines logger for MonitoringEvent instances.

    - Subscribes to an EventBus and writes one JSON object per line.
    - Creates the parent directory on construction.
    """

    def __init__(self, path: Path, bus: EventBus) -> None:
        self._path = path
        self._bus = bus
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file = path.open("a", encoding="utf-8")
        bus.subscribe(self._on_event)

    @property
    def path(self) -> Path:
        return self._path

    def _on_event(self, event: MonitoringEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False, default=str)
        try:
            self._file.write(line + "\n")
            self._file.flush()
        except OSError:
            # A full disk must not take the build down with it.
            log.exception("JsonFileLogger could not write to %s", self._path)

    def close(self) -> None:
        """Unsubscribe and close the file handle."""
        self._bus.unsubscribe(self._on_event)
        if not self._file.closed:
            self._file.close()


def log_event(
    bus: EventBus,
    module: str,
    event_type: EventType,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Create and publish a MonitoringEvent.

        log_event(
            bus=self._bus,
            module="construction.runner",
            event_type=EventType.STEP_EXECUTED,
            message="place ok",
            payload={"index": 3, "op": "place"},
            correlation_id=run_id,
        )
    """
    event = MonitoringEvent(
        ts=time.time(),
        module=module,
        event_type=event_type,
        message=message,
        payload=payload or {},
        correlation_id=correlation_id,
    )
    bus.publish(event)
