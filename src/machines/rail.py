# src/machines/rail.py
"""
Rail duplication machine.

A pit is dug in front of the origin and fitted with a piston pair, a torch
clock and a lever-gated repeater. An observer (facing down) watches the
rail the hopper minecart sits on. Flipping the lever twice at the end arms
the circuit.
"""

from __future__ import annotations

from construction.blueprint import (
    Blueprint,
    Dig,
    Jump,
    Place,
    Provision,
    SetOrigin,
    Toggle,
    WalkNorth,
    WalkTo,
)
from spec.types import UP, Facing

from .registry import register_machine

EAST = Facing.EAST.vector
WEST = Facing.WEST.vector
SOUTH = Facing.SOUTH.vector
DOWN = Facing.DOWN.vector

REQUIRED_ITEMS = {
    "rail": 1,
    "smooth_stone": 8,
    "piston": 2,
    "observer": 1,
    "redstone": 5,
    "hopper_minecart": 1,
    "redstone_torch": 2,
    "repeater": 1,
    "lever": 1,
}

# 2x3 pit one block down, plus the piston slot to its left.
PIT = (
    (0, -1, 1), (0, -1, 2), (0, -1, 3),
    (1, -1, 1), (1, -1, 2), (1, -1, 3), (-1, -1, 3),
)

# Temporary supports for the upper piston.
SCAFFOLD = ((-1, 2, 3), (-1, 3, 3))


@register_machine("rail")
def rail_machine() -> Blueprint:
    steps = (
        Jump(5000),
        WalkNorth(10),
        Provision(),
        SetOrigin(),
        Dig(PIT),

        WalkTo((-2, 0, 3)),
        Place("piston", (-1, -2, 3)),
        Place("smooth_stone", (0, -2, 3)),

        # Torch tower and the stone bridge over the pit.
        WalkTo((2, 0, 3)),
        Place("redstone_torch", (0, -1, 3), EAST),
        Place("smooth_stone", (1, -1, 3)),
        Place("redstone_torch", (1, 0, 3)),
        Place("smooth_stone", (1, 1, 3)),
        Place("smooth_stone", (1, 2, 3), WEST),
        Place("smooth_stone", (0, 2, 3), WEST),
        Place("smooth_stone", (-1, 2, 3)),
        Place("smooth_stone", (-1, 3, 3)),
        Place("redstone", (1, 2, 3)),
        Place("redstone", (0, 2, 3)),

        # Hang the upper piston from the scaffold, then remove it.
        WalkTo((-1, 0, 3)),
        Dig(SCAFFOLD),
        Place("piston", (-1, 4, 3), DOWN),

        # Clock line and lever.
        Place("redstone", (1, -2, 2)),
        Place("redstone", (1, -2, 1)),
        Place("redstone", (0, -2, 1)),
        WalkTo((0, 0, 0)),
        Place("repeater", (0, -2, 2)),
        Place("lever", (1, 0, 3), SOUTH),
        Toggle("lever", (1, 0, 2)),
        Toggle("repeater", (0, -1, 2)),
        Place("smooth_stone", (-1, -1, 2)),

        # Observer over the rail, cart on top.
        WalkTo((-1, 1, 2)),
        Place("observer", (-1, 0, 3), UP, facing=Facing.DOWN),
        Place("rail", (-1, 1, 3)),
        Place("hopper_minecart", (-1, 2, 3)),
        WalkTo((0, 0, 0)),
        Toggle("lever", (1, 0, 2)),
    )

    return Blueprint(
        name="rail",
        description="Piston-driven rail duplicator armed by a lever",
        required_items=REQUIRED_ITEMS,
        steps=steps,
        tags=("redstone",),
    )
