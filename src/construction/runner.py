# src/construction/runner.py
"""
Blueprint execution.

BlueprintRunner walks a Blueprint's steps strictly in order. Step N+1 starts
only after step N's action and its settling have completed, whatever step N's
outcome. There is no rollback, no branching on earlier results and no
parallelism: a failed step leaves a hole in the structure, the rest of the
machine is still built.

Public contract:
    run(blueprint) -> RunReport
    execute_step(directive, blueprint) -> ActionResult
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Optional

from monitoring.events import EventType
from monitoring.logger import log_event
from spec.types import ActionResult, FailureKind

from .blueprint import (
    Blueprint,
    Control,
    Dig,
    Jump,
    Place,
    Pour,
    Provision,
    SetOrigin,
    Toggle,
    WalkNorth,
    WalkTo,
)
from .frame import ConstructionSession
from .primitives import ActionPrimitives
from .provisioning import InventoryProvisioner
from .tracing import StepRecord, StepTracer

log = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Outcome of one blueprint run."""

    machine: str
    run_id: str
    planned_steps: int = 0
    records: List[StepRecord] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.records if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.records if not r.success)

    @property
    def completed(self) -> bool:
        """True when every planned step produced a record (the run was never aborted)."""
        return len(self.records) == self.planned_steps

    def failures(self) -> List[StepRecord]:
        return [r for r in self.records if not r.success]

    def summary(self) -> Dict[str, Any]:
        return {
            "machine": self.machine,
            "run_id": self.run_id,
            "steps": len(self.records),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_s": round(self.duration_s, 4),
        }


class BlueprintRunner:
    """
    Execute blueprints through ActionPrimitives.

    Responsibilities:
    - Dispatch each directive to its primitive.
    - Record every step, successful or not.
    - Publish RUN_STARTED / RUN_FINISHED when the session has a bus.

    Non-responsibilities:
    - Deciding whether a failure matters (the report says what happened).
    - Pathfinding, inventory protocol, world state.
    """

    def __init__(
        self,
        session: ConstructionSession,
        *,
        primitives: Optional[ActionPrimitives] = None,
        provisioner: Optional[InventoryProvisioner] = None,
        tracer: Optional[StepTracer] = None,
    ) -> None:
        self._session = session
        self._primitives = primitives or ActionPrimitives(session)
        self._provisioner = provisioner or InventoryProvisioner(session)
        self._tracer = tracer or StepTracer(bus=session.bus)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, blueprint: Blueprint) -> RunReport:
        session = self._session
        report = RunReport(
            machine=blueprint.name,
            run_id=session.run_id,
            planned_steps=len(blueprint.steps),
        )

        log.info("Building %s (%d steps, run %s)", blueprint.name, len(blueprint.steps), session.run_id)
        self._publish(EventType.RUN_STARTED, f"build {blueprint.name}", blueprint.describe())

        run_start = perf_counter()
        for index, directive in enumerate(blueprint.steps):
            if session.bus is not None:
                # Deliver commands queued from signal handlers or other threads.
                session.bus.dispatch_pending()
            start = perf_counter()
            try:
                result = self.execute_step(directive, blueprint)
            except Exception as exc:
                # Primitives do not raise; this guards dispatch itself.
                log.exception("Step #%d raised unexpectedly", index)
                result = ActionResult.fail(FailureKind.EXECUTION_EXCEPTION, exception=repr(exc))
            duration = perf_counter() - start

            try:
                record = self._tracer.record(
                    index=index,
                    directive=directive,
                    result=result,
                    duration_s=duration,
                    run_id=session.run_id,
                )
            except Exception:
                log.exception("Step tracing failed for #%d", index)
                record = StepRecord(
                    index=index,
                    op=getattr(directive, "op", type(directive).__name__),
                    description=repr(directive),
                    success=result.success,
                    error=result.error.value if result.error is not None else None,
                    duration_s=duration,
                    timestamp=0.0,
                    details={},
                )
            report.records.append(record)

        report.duration_s = perf_counter() - run_start
        log.info(
            "Finished %s: %d/%d steps succeeded",
            blueprint.name,
            report.succeeded,
            len(report.records),
        )
        self._publish(EventType.RUN_FINISHED, f"finished {blueprint.name}", report.summary())
        return report

    def execute_step(self, directive: Any, blueprint: Optional[Blueprint] = None) -> ActionResult:
        """Dispatch one directive to its primitive."""
        prims = self._primitives

        if isinstance(directive, Place):
            return prims.place_at(directive.item, directive.offset, directive.direction, directive.facing)
        elif isinstance(directive, Dig):
            return prims.dig_list(directive.offsets)
        elif isinstance(directive, Pour):
            return prims.pour_liquid(directive.offset)
        elif isinstance(directive, Toggle):
            return prims.toggle_block(directive.block_type, directive.offset)
        elif isinstance(directive, WalkTo):
            return prims.walk_to(directive.offset)
        elif isinstance(directive, WalkNorth):
            return prims.walk_north(directive.steps)
        elif isinstance(directive, Jump):
            return prims.jump_for(directive.duration_ms)
        elif isinstance(directive, Control):
            return prims.set_control(directive.name, directive.state)
        elif isinstance(directive, SetOrigin):
            frame = self._session.set_origin()
            return ActionResult.ok(origin=frame.position.as_tuple(), heading=frame.heading)
        elif isinstance(directive, Provision):
            required = blueprint.required_items if blueprint is not None else {}
            provisioned = self._provisioner.provision(required)
            if not provisioned.success:
                return ActionResult.fail(
                    FailureKind.TRANSIENT_ACTION_FAILURE, requested=provisioned.requested()
                )
            return ActionResult.ok(requested=provisioned.requested())

        return ActionResult.fail(
            FailureKind.EXECUTION_EXCEPTION,
            reason="unsupported_directive",
            directive=type(directive).__name__,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish(self, event_type: EventType, message: str, payload: Dict[str, Any]) -> None:
        bus = self._session.bus
        if bus is None:
            return
        log_event(
            bus=bus,
            module="construction.runner",
            event_type=event_type,
            message=message,
            payload=payload,
            correlation_id=self._session.run_id,
        )
