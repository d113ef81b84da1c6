# src/machines/registry.py
"""
Machine registry.

Each machine module defines a zero-argument builder returning a Blueprint
and decorates it with @register_machine. Importing `machines` imports every
machine module, so the registry is complete once the package is loaded.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from construction.blueprint import Blueprint

BlueprintBuilder = Callable[[], Blueprint]

_BUILDERS: Dict[str, BlueprintBuilder] = {}


def register_machine(name: str) -> Callable[[BlueprintBuilder], BlueprintBuilder]:
    """
    Decorator registering a blueprint builder under `name`.

    Usage:

        @register_machine("cane")
        def cane_machine() -> Blueprint:
            ...
    """

    def decorator(builder: BlueprintBuilder) -> BlueprintBuilder:
        if name in _BUILDERS:
            raise ValueError(f"Machine already registered: {name}")
        _BUILDERS[name] = builder
        return builder

    return decorator


def get_machine(name: str) -> Blueprint:
    """Build a fresh Blueprint for `name` (KeyError if unknown)."""
    try:
        builder = _BUILDERS[name]
    except KeyError:
        raise KeyError(f"Unknown machine: {name!r}. Known: {list_machines()}") from None
    blueprint = builder()
    if blueprint.name != name:
        raise ValueError(f"Builder for {name!r} produced blueprint {blueprint.name!r}")
    return blueprint


def list_machines() -> List[str]:
    return sorted(_BUILDERS)
