# src/machines/__init__.py
"""
Machine blueprints.

Importing this package registers every bundled machine.
"""

from __future__ import annotations

from .registry import get_machine, list_machines, register_machine

from . import cane  # noqa: F401
from . import rail  # noqa: F401

__all__ = ["get_machine", "list_machines", "register_machine"]
