# src/construction/validate.py
"""
Offline blueprint tooling.

Everything here works on Blueprint data alone (or on a FakeBridge), never on
a live agent:

- support_graph(bp)      -> networkx DiGraph of "step A provides the block
                            step B builds against"
- validate_blueprint(bp) -> ValidationReport (ordering and item accounting)
- suggest_order(bp)      -> step indices reordered so supports come first
- simulate(bp)           -> run the blueprint against an in-memory world
- diff_blueprints(a, b)  -> unified diff of two blueprints' step lists

Cells are keyed in offset space (right, up, forward). A world direction
(dx, dy, dz) moves an offset by (dx, dy, -dz).
"""

from __future__ import annotations

import difflib
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from bridge.testing.fakes import BridgeCall, FakeBridge, FakeWorld
from env.schema import ConstructionConfig

from .blueprint import Blueprint, Dig, Place, Pour, Toggle
from .frame import ConstructionSession
from .runner import BlueprintRunner, RunReport

log = logging.getLogger(__name__)

Cell = Tuple[int, int, int]

ERROR = "error"
WARNING = "warning"


def _cell(offset: Any) -> Cell:
    right, up, forward = offset.as_tuple()
    return (math.floor(right), math.floor(up), math.floor(forward))


def produced_cell(step: Place) -> Cell:
    """Offset-space cell a placement fills."""
    right, up, forward = _cell(step.offset)
    d = step.direction
    return (right + math.floor(d.x), up + math.floor(d.y), forward - math.floor(d.z))


def _effects(step: Any) -> Tuple[Optional[Cell], Optional[Cell], Tuple[Cell, ...]]:
    """(consumed cell, produced cell, cleared cells) for one directive."""
    if isinstance(step, Place):
        return _cell(step.offset), produced_cell(step), ()
    if isinstance(step, Pour):
        return None, _cell(step.offset), ()
    if isinstance(step, Toggle):
        return _cell(step.offset), None, ()
    if isinstance(step, Dig):
        return None, None, tuple(_cell(o) for o in step.offsets)
    return None, None, ()


# ---------------------------------------------------------------------------
# Support graph
# ---------------------------------------------------------------------------


def support_graph(blueprint: Blueprint) -> nx.DiGraph:
    """
    Dependency graph between steps.

    Nodes are step indices (attributes: op, description). An edge P -> C
    with attribute `cell` means C builds against (or toggles) the cell that
    P produced. C is linked to the latest producer before it; when nothing
    before C produces its cell, it is linked to the first producer after it
    and the edge is flagged `forward=True`.
    """
    graph = nx.DiGraph()
    producers: Dict[Cell, List[int]] = {}
    cleared: Dict[Cell, List[int]] = {}

    for index, step in enumerate(blueprint.steps):
        graph.add_node(index, op=step.op, description=step.describe())
        _, produced, clears = _effects(step)
        if produced is not None:
            producers.setdefault(produced, []).append(index)
        for cell in clears:
            cleared.setdefault(cell, []).append(index)

    for index, step in enumerate(blueprint.steps):
        consumed, _, _ = _effects(step)
        if consumed is None or consumed not in producers:
            continue
        earlier = [p for p in producers[consumed] if p < index]
        if earlier:
            source = earlier[-1]
            # A dig between producer and consumer removed the block again.
            if any(source < d < index for d in cleared.get(consumed, ())):
                continue
            graph.add_edge(source, index, cell=consumed, forward=False)
        else:
            later = [p for p in producers[consumed] if p > index]
            if later:
                graph.add_edge(later[0], index, cell=consumed, forward=True)

    return graph


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationIssue:
    index: Optional[int]      # step index, None for blueprint-level issues
    code: str
    message: str
    severity: str = ERROR


@dataclass
class ValidationReport:
    machine: str
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(i.severity == ERROR for i in self.issues)

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "machine": self.machine,
            "ok": self.ok,
            "issues": [
                {"index": i.index, "code": i.code, "severity": i.severity, "message": i.message}
                for i in self.issues
            ],
        }


def validate_blueprint(
    blueprint: Blueprint,
    config: Optional[ConstructionConfig] = None,
) -> ValidationReport:
    """
    Check a blueprint without executing it.

    Errors:
    - bad_requirement:        a required quantity below 1
    - unlisted_item:          an item placed or poured but not required
    - insufficient_quantity:  more placements of an item than required
    Warnings:
    - support_after_use:      a step builds against a cell only a later
                              step provides (terrain may still cover it)
    - toggle_before_place:    a toggle targets a cell only placed later
    """
    cfg = config or ConstructionConfig()
    report = ValidationReport(machine=blueprint.name)
    required = blueprint.required_items

    for item, count in required.items():
        if int(count) < 1:
            report.issues.append(
                ValidationIssue(None, "bad_requirement", f"{item}: required count {count} < 1")
            )

    placed = blueprint.placements()
    for item, used in sorted(placed.items()):
        if item not in required:
            report.issues.append(
                ValidationIssue(None, "unlisted_item", f"{item} is placed but not required")
            )
        elif used > int(required[item]):
            report.issues.append(
                ValidationIssue(
                    None,
                    "insufficient_quantity",
                    f"{item}: placed {used} times, only {required[item]} required",
                )
            )
    if blueprint.uses_pour() and cfg.liquid_item not in required:
        report.issues.append(
            ValidationIssue(None, "unlisted_item", f"{cfg.liquid_item} is poured but not required")
        )

    graph = support_graph(blueprint)
    for source, target, data in graph.edges(data=True):
        if not data.get("forward"):
            continue
        step = blueprint.steps[target]
        code = "toggle_before_place" if isinstance(step, Toggle) else "support_after_use"
        report.issues.append(
            ValidationIssue(
                target,
                code,
                f"step #{target} ({step.describe()}) needs cell {data['cell']}, "
                f"first provided by step #{source}",
                severity=WARNING,
            )
        )

    report.issues.sort(key=lambda i: (-1 if i.index is None else i.index, i.code))
    return report


def suggest_order(blueprint: Blueprint) -> List[int]:
    """
    Step indices in an order where every support precedes its users.

    Ties keep the original order. Raises ValueError when the support
    relation is cyclic.
    """
    graph = support_graph(blueprint)
    try:
        return list(nx.lexicographical_topological_sort(graph, key=lambda n: n))
    except nx.NetworkXUnfeasible as exc:
        raise ValueError(f"Blueprint {blueprint.name!r} has cyclic supports") from exc


# ---------------------------------------------------------------------------
# Simulation and diff
# ---------------------------------------------------------------------------


@dataclass
class SimulationResult:
    report: RunReport
    blocks: Dict[Cell, str]
    entities: List[Tuple[str, Cell]]
    calls: List[BridgeCall]
    commands: List[str]


def simulate(
    blueprint: Blueprint,
    world: Optional[FakeWorld] = None,
    config: Optional[ConstructionConfig] = None,
) -> SimulationResult:
    """Run `blueprint` against an in-memory world starting with an empty inventory."""
    bridge = FakeBridge(world or FakeWorld())
    session = ConstructionSession(bridge, config=config)
    report = BlueprintRunner(session).run(blueprint)
    log.info("Simulated %s: %s", blueprint.name, report.summary())
    return SimulationResult(
        report=report,
        blocks=bridge.world.edits(),
        entities=list(bridge.world.entities),
        calls=list(bridge.calls),
        commands=list(bridge.commands),
    )


def diff_blueprints(a: Blueprint, b: Blueprint) -> List[str]:
    """Unified diff of the two step lists, one line per directive."""
    before = [step.describe() for step in a.steps]
    after = [step.describe() for step in b.steps]
    return list(difflib.unified_diff(before, after, fromfile=a.name, tofile=b.name, lineterm=""))
