# EnvProfile, BridgeConfig, ConstructionConfig dataclasses
# src/env/schema.py

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional


@dataclass
class BridgeConfig:
    """How to reach the agent body."""
    mode: str                        # "ipc" or "fake"
    host: Optional[str] = None       # required if mode == "ipc"
    port: Optional[int] = None       # required if mode == "ipc"
    timeout_s: float = 30.0          # per-request socket timeout


@dataclass
class ConstructionConfig:
    """Retry bounds and settling delays used by the construction primitives."""
    max_place_attempts: int = 3
    look_settle_ms: int = 200
    pour_settle_ms: int = 1000
    provision_settle_ms: int = 200
    jump_press_ms: int = 100
    settle_tick_ms: int = 50
    # Occupancy pre-check before placing; off unless explicitly enabled.
    skip_air_check: bool = True
    liquid_item: str = "water_bucket"
    acquire_command: str = "/give @s {item} {count}"
    eye_height: float = 1.62
    hand: str = "hand"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ConstructionConfig":
        """Build from a YAML mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown construction config keys: {unknown}")
        return cls(**dict(raw))


@dataclass
class EnvProfile:
    """Resolved environment for one active profile."""
    name: str
    bridge: BridgeConfig
    construction: ConstructionConfig
    event_log: Optional[str] = None   # JSONL path for monitoring events
    extra: Dict[str, Any] = field(default_factory=dict)
