# src/spec/__init__.py

from __future__ import annotations

"""
Public spec surface for the construction core.

This module re-exports *interfaces and data types* shared across packages:
  - geometry and outcome types (Vec3, Offset, Facing, ActionResult, FailureKind)
  - world objects seen through the bridge (BlockInfo, ItemStack)
  - the CapabilityBridge protocol implemented by agent bodies
"""

from .types import (
    UP,
    ActionResult,
    BlockInfo,
    Facing,
    FailureKind,
    ItemStack,
    Offset,
    Vec3,
)
from .bridge import CapabilityBridge

__all__ = [
    "UP",
    "ActionResult",
    "BlockInfo",
    "CapabilityBridge",
    "Facing",
    "FailureKind",
    "ItemStack",
    "Offset",
    "Vec3",
]
