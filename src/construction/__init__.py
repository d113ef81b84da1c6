# construction package
# src/construction/__init__.py
"""
Relative-placement construction core.

Exports:
    - ConstructionSession / OriginFrame: per-run context and local frame
    - ActionPrimitives: equip, place, pour, toggle, dig, walk, jump
    - InventoryProvisioner: top up required items
    - BlueprintRunner / RunReport: sequential blueprint execution
    - Settler: bounded waits for the environment to catch up
"""

from __future__ import annotations

from .blueprint import (
    Blueprint,
    Control,
    Dig,
    Directive,
    Jump,
    Place,
    Pour,
    Provision,
    SetOrigin,
    Toggle,
    WalkNorth,
    WalkTo,
)
from .frame import ConstructionSession, OriginFrame
from .primitives import ActionPrimitives
from .provisioning import InventoryProvisioner, ProvisionReport
from .runner import BlueprintRunner, RunReport
from .settle import Settler

__all__ = [
    "ActionPrimitives",
    "Blueprint",
    "BlueprintRunner",
    "ConstructionSession",
    "Control",
    "Dig",
    "Directive",
    "InventoryProvisioner",
    "Jump",
    "OriginFrame",
    "Place",
    "Pour",
    "Provision",
    "ProvisionReport",
    "RunReport",
    "SetOrigin",
    "Settler",
    "Toggle",
    "WalkNorth",
    "WalkTo",
]
