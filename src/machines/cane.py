# src/machines/cane.py
"""
Sugar cane farm.

Layout (offsets are right, up, forward from the origin):
- Collection line at forward 3: hoppers under a rail track, powered rails
  at both ends, a hopper minecart shuttling along it.
- Planter row at up 2: grass blocks with water channels poured behind them.
- Five pistons above the cane, each triggered by an observer watching the
  cane grow, wired together with redstone dust.
- Glass walls keep the broken cane inside the collection area.

Sneak is held while placing hoppers and rails so clicking on containers
places against them instead of opening them.
"""

from __future__ import annotations

from construction.blueprint import (
    Blueprint,
    Control,
    Jump,
    Place,
    Pour,
    Provision,
    SetOrigin,
    WalkNorth,
    WalkTo,
)
from spec.types import Facing

from .registry import register_machine

NORTH = Facing.NORTH.vector
EAST = Facing.EAST.vector
WEST = Facing.WEST.vector
SOUTH = Facing.SOUTH.vector

REQUIRED_ITEMS = {
    "chest": 2,
    "hopper": 6,
    "rail": 3,
    "powered_rail": 2,
    "oak_planks": 45,
    "redstone_block": 2,
    "grass_block": 17,
    "water_bucket": 5,
    "piston": 5,
    "observer": 5,
    "redstone": 5,
    "sugar_cane": 5,
    "glass": 21,
    "hopper_minecart": 1,
}


@register_machine("cane")
def cane_machine() -> Blueprint:
    steps = [
        Jump(5000),
        WalkNorth(10),
        Provision(),
        SetOrigin(),
        Place("chest", (0, -1, 1)),
        WalkTo((0, 0, 8)),

        # Hopper line and track.
        Control("sneak", True),
        Place("hopper", (0, 0, 2), NORTH),
        Place("hopper", (0, 0, 2), NORTH),
        Place("hopper", (0, 0, 3), WEST),
        Place("hopper", (-1, 0, 3), WEST),
        Place("hopper", (0, 0, 3), EAST),
        Place("hopper", (1, 0, 3), EAST),
        Place("powered_rail", (-2, 0, 3)),
        Place("rail", (-1, 0, 3)),
        Place("rail", (0, 0, 3)),
        Place("rail", (1, 0, 3)),
        Place("powered_rail", (2, 0, 3)),
        Control("sneak", False),

        # Track end walls and the floor behind the track.
        Place("oak_planks", (-3, -1, 3)),
        Place("oak_planks", (-3, 0, 3)),
        Place("oak_planks", (3, -1, 3)),
        Place("oak_planks", (3, 0, 3)),
        Place("oak_planks", (-3, -1, 4)),
        Place("oak_planks", (-3, 0, 4)),
        Place("oak_planks", (3, -1, 4)),
        Place("oak_planks", (3, 0, 4)),
        Place("oak_planks", (-2, -1, 4)),
        Place("redstone_block", (-2, 0, 4)),
        Place("oak_planks", (-1, -1, 4)),
        Place("oak_planks", (-1, 0, 4)),
        Place("oak_planks", (2, -1, 4)),
        Place("redstone_block", (2, 0, 4)),
        Place("oak_planks", (1, -1, 4)),
        Place("oak_planks", (1, 0, 4)),
        Place("oak_planks", (0, -1, 4)),
        Place("oak_planks", (0, 0, 4)),

        # Planter row.
        Place("grass_block", (-3, -1, 5)),
        WalkTo((0, 2, 4)),
    ]
    steps += [Place("grass_block", (right, 1, 3)) for right in (-2, -1, 0, 1, 2)]
    steps += [
        Place("oak_planks", (3, 1, 4)),
        Place("oak_planks", (3, 1, 3)),
        Place("oak_planks", (-3, 1, 4)),
        Place("oak_planks", (-3, 1, 3)),

        # Water channel rims, built sideways from the corner posts.
        Place("oak_planks", (-3, 2, 3), SOUTH),
    ]
    steps += [Place("oak_planks", (right, 2, 2), EAST) for right in (-3, -2, -1, 0, 1, 2)]
    steps += [Place("oak_planks", (-3, 2, 4), NORTH)]
    steps += [Place("oak_planks", (right, 2, 5), EAST) for right in (-3, -2, -1, 0, 1, 2)]

    # Water behind the grass, then the cane itself.
    steps += [WalkTo((0, 4, 3))]
    steps += [Pour((right, 2, 4)) for right in (-2, -1, 0, 1, 2)]
    steps += [Place("sugar_cane", (right, 2, 3)) for right in (2, 1, 0, -1, -2)]

    # Piston shelf.
    steps += [
        Place("oak_planks", (3, 2, 4)),
        Place("oak_planks", (-3, 2, 4)),
    ]
    steps += [Place("oak_planks", (right, 3, 4), WEST) for right in (3, 2, 1, 0, -1)]
    for right in (-2, -1, 0, 1, 2):
        steps += [WalkTo((right, 4, 3)), Place("piston", (right, 3, 4))]
    steps += [WalkTo((3, 4, 4))]

    # Observers on a grass backing, linked with redstone.
    steps += [Place("grass_block", (right, 2, 5)) for right in (-2, -1, 0, 1, 2, 3)]
    for right in (-2, -1, 0, 1, 2):
        steps += [WalkTo((right, 5, 6)), Place("observer", (right, 4, 4))]
    steps += [WalkTo((3, 5, 6))]
    steps += [Place("grass_block", (right, 3, 5)) for right in (-2, -1, 0, 1, 2)]
    steps += [Place("redstone", (right, 4, 5)) for right in (2, 1, 0, -1, -2)]

    # Glass walls: side columns first, the middle column from closer in.
    steps += [WalkTo((0, 2, 2))]
    steps += [Place("glass", (-3, up, 3)) for up in (2, 3, 4)]
    for right in (-2, -1):
        steps += [Place("glass", (right, up, 2)) for up in (2, 3, 4)]
    steps += [Place("glass", (3, up, 3)) for up in (2, 3, 4)]
    for right in (2, 1):
        steps += [Place("glass", (right, up, 2)) for up in (2, 3, 4)]
    steps += [WalkTo((0, 1, 1))]
    steps += [Place("glass", (0, up, 2)) for up in (2, 3, 4)]

    steps += [
        WalkTo((1, 0, 1)),
        Place("hopper_minecart", (2, 1, 3)),
        WalkTo((0, 0, 8)),
    ]

    return Blueprint(
        name="cane",
        description="Observer-triggered sugar cane farm with hopper minecart collection",
        required_items=REQUIRED_ITEMS,
        steps=tuple(steps),
        tags=("farm", "redstone"),
    )
