# src/construction/frame.py
"""
Origin frame and construction session.

A blueprint is written in local (right, up, forward) offsets. The session
captures where the agent stood when the build started (the origin frame)
and resolves every offset against it:

    abs.x = origin.x + right
    abs.y = origin.y + up
    abs.z = origin.z - forward

The session is the explicit context threaded into every primitive: it owns
the bridge, the tuning config, the frame, the interrupt signal and the
narration sink. Nothing here is process-global, so two sessions against two
bridges never see each other's origin.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from env.schema import ConstructionConfig
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event
from spec.bridge import CapabilityBridge
from spec.types import Offset, Vec3

from .settle import Settler

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OriginFrame:
    """Reference position and heading captured at the start of a build."""

    position: Vec3
    heading: float

    @classmethod
    def capture(cls, bridge: CapabilityBridge) -> "OriginFrame":
        """Snapshot the agent's current position and heading."""
        return cls(position=Vec3.of(bridge.get_position()), heading=float(bridge.get_heading()))

    def resolve(self, offset: Any) -> Vec3:
        off = Offset.of(offset)
        return Vec3(
            self.position.x + off.right,
            self.position.y + off.up,
            self.position.z - off.forward,
        )


class ConstructionSession:
    """
    Per-run construction context.

    Only set_origin() writes the frame. ensure_origin() is the lazy
    check-then-set path used by primitives that need absolute coordinates.
    """

    def __init__(
        self,
        bridge: CapabilityBridge,
        *,
        config: Optional[ConstructionConfig] = None,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.bridge = bridge
        self.config = config if config is not None else ConstructionConfig()
        self.bus = bus
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.interrupt = threading.Event()
        self.settler = Settler(bridge, tick_ms=self.config.settle_tick_ms)
        self._log = logger or log
        self._frame: Optional[OriginFrame] = None

    # ------------------------------------------------------------------
    # Origin frame
    # ------------------------------------------------------------------

    @property
    def frame(self) -> Optional[OriginFrame]:
        return self._frame

    def set_origin(self) -> OriginFrame:
        """Capture the agent's current pose as the origin, replacing any frame."""
        self._frame = OriginFrame.capture(self.bridge)
        self.narrate(
            logging.INFO,
            "Origin set to %s with heading %.3f",
            self._frame.position,
            self._frame.heading,
        )
        return self._frame

    def ensure_origin(self) -> OriginFrame:
        if self._frame is None:
            self.narrate(logging.INFO, "Origin not set. Setting origin to current position.")
            return self.set_origin()
        return self._frame

    def resolve(self, offset: Any) -> Vec3:
        """Absolute world coordinate for a local offset (creates the frame if needed)."""
        return self.ensure_origin().resolve(offset)

    # ------------------------------------------------------------------
    # Narration
    # ------------------------------------------------------------------

    def narrate(
        self, level: int, msg: str, *args: Any, exc_info: bool = False, **payload: Any
    ) -> None:
        """
        Log one decision or outcome, and mirror it onto the event bus.

        Every success, retry, skip and failure of a primitive goes through
        here so a run can be diagnosed after the fact.
        """
        self._log.log(level, msg, *args, exc_info=exc_info)
        if self.bus is None:
            return
        log_event(
            bus=self.bus,
            module="construction",
            event_type=EventType.LOG,
            message=msg % args if args else msg,
            payload={"level": logging.getLevelName(level), **payload},
            correlation_id=self.run_id,
        )
