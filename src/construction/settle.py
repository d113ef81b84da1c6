# src/construction/settle.py
"""
Settling waits for environment acknowledgment.

Several primitives need the world to "catch up" before the next action:
the server has to register a new look direction, poured liquid has to
appear, a /give command has to land in the inventory. Settler models this
as "wait until acknowledged, or until a bounded fallback timeout":

    settler.wait("look", 200)                          # plain delay
    settler.wait("pour", 1000, until=water_is_there)   # ack or timeout

All waiting goes through CapabilityBridge.sleep(), so a fake bridge with a
virtual clock makes every wait deterministic and instant in tests.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from spec.bridge import CapabilityBridge

log = logging.getLogger(__name__)

AckFn = Callable[[], bool]


class Settler:
    """Bounded waits expressed through the bridge's cooperative sleep."""

    def __init__(self, bridge: CapabilityBridge, *, tick_ms: int = 50) -> None:
        if tick_ms <= 0:
            raise ValueError("tick_ms must be positive")
        self._bridge = bridge
        self._tick_ms = tick_ms

    def wait(self, reason: str, timeout_ms: int, until: Optional[AckFn] = None) -> bool:
        """
        Wait up to `timeout_ms`.

        Without `until`, this is a single sleep of the full timeout and
        always returns True. With `until`, the predicate is polled every
        tick and the wait ends as soon as it holds; returns whether the
        acknowledgment was observed.
        """
        if timeout_ms <= 0:
            return until() if until is not None else True

        if until is None:
            self._bridge.sleep(timeout_ms)
            return True

        waited = 0
        while waited < timeout_ms:
            if until():
                log.debug("settle %s acknowledged after %dms", reason, waited)
                return True
            step = min(self._tick_ms, timeout_ms - waited)
            self._bridge.sleep(step)
            waited += step

        acked = until()
        if not acked:
            log.debug("settle %s: no acknowledgment within %dms", reason, timeout_ms)
        return acked
