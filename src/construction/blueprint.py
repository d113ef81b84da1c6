# src/construction/blueprint.py
"""
Declarative blueprint records.

A machine is an ordered tuple of directives, one per primitive invocation.
Directives are plain frozen data: the same blueprint can be executed by
BlueprintRunner, checked by construction.validate, simulated against a fake
world, or diffed against another revision without re-deriving control flow.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from spec.types import UP, Facing, Offset, Vec3


@dataclass(frozen=True)
class SetOrigin:
    """Capture the agent's current pose as the origin frame."""
    op: ClassVar[str] = "set_origin"

    def describe(self) -> str:
        return "set_origin"


@dataclass(frozen=True)
class Place:
    """Place `item` against the block at `offset`, on its `direction` face."""
    item: str
    offset: Offset
    direction: Vec3 = UP
    facing: Optional[Facing] = None
    op: ClassVar[str] = "place"

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", Offset.of(self.offset))
        object.__setattr__(self, "direction", Vec3.of(self.direction))
        if self.facing is not None:
            object.__setattr__(self, "facing", Facing(self.facing))

    def describe(self) -> str:
        text = f"place {self.item} at {self.offset} dir {self.direction.as_tuple()}"
        if self.facing is not None:
            text += f" facing {self.facing.value}"
        return text


@dataclass(frozen=True)
class Dig:
    """Dig every listed offset, best-effort."""
    offsets: Tuple[Offset, ...]
    op: ClassVar[str] = "dig"

    def __post_init__(self) -> None:
        object.__setattr__(self, "offsets", tuple(Offset.of(o) for o in self.offsets))

    def describe(self) -> str:
        return "dig " + " ".join(str(o) for o in self.offsets)


@dataclass(frozen=True)
class Pour:
    """Pour the configured liquid container toward `offset`."""
    offset: Offset
    op: ClassVar[str] = "pour"

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", Offset.of(self.offset))

    def describe(self) -> str:
        return f"pour at {self.offset}"


@dataclass(frozen=True)
class Toggle:
    """Activate the block at `offset` if it is a `block_type`."""
    block_type: str
    offset: Offset
    op: ClassVar[str] = "toggle"

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", Offset.of(self.offset))

    def describe(self) -> str:
        return f"toggle {self.block_type} at {self.offset}"


@dataclass(frozen=True)
class WalkTo:
    offset: Offset
    op: ClassVar[str] = "walk_to"

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", Offset.of(self.offset))

    def describe(self) -> str:
        return f"walk to {self.offset}"


@dataclass(frozen=True)
class WalkNorth:
    steps: int
    op: ClassVar[str] = "walk_north"

    def describe(self) -> str:
        return f"walk north {self.steps}"


@dataclass(frozen=True)
class Jump:
    duration_ms: int
    op: ClassVar[str] = "jump"

    def describe(self) -> str:
        return f"jump for {self.duration_ms}ms"


@dataclass(frozen=True)
class Control:
    """Hold or release a movement control (e.g. sneak while placing onto containers)."""
    name: str
    state: bool
    op: ClassVar[str] = "control"

    def describe(self) -> str:
        return f"control {self.name}={'on' if self.state else 'off'}"


@dataclass(frozen=True)
class Provision:
    """Request whatever the blueprint's required items are short of."""
    op: ClassVar[str] = "provision"

    def describe(self) -> str:
        return "provision required items"


Directive = Union[SetOrigin, Place, Dig, Pour, Toggle, WalkTo, WalkNorth, Jump, Control, Provision]


@dataclass(frozen=True)
class Blueprint:
    """
    One machine: a name, the items it needs, and its ordered steps.

    Ordering is part of correctness: supports come before what rests on
    them, containment before the liquid it holds.
    """
    name: str
    description: str
    required_items: Mapping[str, int]
    steps: Tuple[Directive, ...]
    tags: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "required_items", dict(self.required_items))
        object.__setattr__(self, "steps", tuple(self.steps))

    def placements(self) -> Counter:
        """How many times each item is placed."""
        used: Counter = Counter()
        for step in self.steps:
            if isinstance(step, Place):
                used[step.item] += 1
        return used

    def uses_pour(self) -> bool:
        return any(isinstance(step, Pour) for step in self.steps)

    def describe(self) -> Dict[str, Any]:
        """Metadata for the CLI and for logs."""
        ops: Counter = Counter(step.op for step in self.steps)
        return {
            "name": self.name,
            "description": self.description,
            "steps": len(self.steps),
            "ops": dict(ops),
            "required_items": dict(self.required_items),
            "tags": list(self.tags),
        }
