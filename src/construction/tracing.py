# src/construction/tracing.py
"""
Step tracing for blueprint runs.

A thin, structured layer around step execution so that monitoring and
post-hoc diagnosis consume consistent records. It does NOT make control
decisions; a failing tracer never breaks the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event
from spec.types import ActionResult


@dataclass
class StepRecord:
    """Structured record of a single executed blueprint step."""

    index: int                 # position in the blueprint
    op: str                    # directive op ("place", "dig", ...)
    description: str           # human-readable directive summary
    success: bool
    error: Optional[str]       # FailureKind value, if failed
    duration_s: float
    timestamp: float           # wall-clock time (time.time())
    details: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "op": self.op,
            "description": self.description,
            "success": self.success,
            "error": self.error,
            "duration_s": self.duration_s,
        }


class StepTracer:
    """
    Per-step logging and event publishing.

    - Emits one log line per step (info on success, warning on failure).
    - Publishes STEP_EXECUTED events when a bus is attached.
    """

    def __init__(
        self,
        *,
        bus: Optional[EventBus] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._bus = bus
        self._logger = logger or logging.getLogger("construction.step")

    def record(
        self,
        *,
        index: int,
        directive: Any,
        result: ActionResult,
        duration_s: float,
        run_id: Optional[str] = None,
    ) -> StepRecord:
        rec = StepRecord(
            index=index,
            op=getattr(directive, "op", type(directive).__name__),
            description=_describe(directive),
            success=bool(result.success),
            error=result.error.value if result.error is not None else None,
            duration_s=duration_s,
            timestamp=time.time(),
            details=dict(result.details),
        )

        level = logging.INFO if rec.success else logging.WARNING
        self._logger.log(
            level,
            "step #%d %s success=%s error=%s duration=%.4fs",
            rec.index,
            rec.description,
            rec.success,
            rec.error,
            rec.duration_s,
        )

        if self._bus is not None:
            try:
                log_event(
                    bus=self._bus,
                    module="construction.runner",
                    event_type=EventType.STEP_EXECUTED,
                    message=rec.description,
                    payload=rec.to_dict(),
                    correlation_id=run_id,
                )
            except Exception:
                self._logger.exception("Failed to publish step record #%d", rec.index)

        return rec

def _describe(directive: Any) -> str:
    describe = getattr(directive, "describe", None)
    if callable(describe):
        return str(describe())
    return repr(directive)
