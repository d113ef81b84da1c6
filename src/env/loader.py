from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .schema import BridgeConfig, ConstructionConfig, EnvProfile


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_ROOT = PROJECT_ROOT / "config"

BRIDGE_MODES = ("ipc", "fake")


def _load_yaml(config_root: Path, name: str) -> Dict[str, Any]:
    """Load a YAML config file from the config directory."""
    path = config_root / name
    if not path.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at top of {path}, got {type(data)}")
    return data


def _select_profile(
    env_cfg: Dict[str, Any],
    override: Optional[str] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Return (active_profile_name, active_profile_mapping)."""
    profile_name = override or env_cfg.get("profile")
    if not profile_name:
        raise ValueError("env.yaml must define a 'profile' key.")
    profiles = env_cfg.get("profiles")
    if not isinstance(profiles, dict):
        raise ValueError("env.yaml must define a 'profiles' mapping.")
    if profile_name not in profiles:
        raise KeyError(f"Profile '{profile_name}' not found in env.yaml profiles.")
    return profile_name, profiles[profile_name] or {}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_construction_config(
    config_root: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ConstructionConfig:
    """Load construction.yaml defaults and apply per-profile overrides."""
    root = config_root or CONFIG_ROOT
    raw = _load_yaml(root, "construction.yaml").get("construction") or {}
    if not isinstance(raw, dict):
        raise ValueError("construction.yaml must define a 'construction' mapping.")
    merged = dict(raw)
    merged.update(overrides or {})
    return ConstructionConfig.from_mapping(merged)


def load_environment(
    config_root: Optional[Path] = None,
    profile: Optional[str] = None,
) -> EnvProfile:
    """Main entry point: returns a fully resolved EnvProfile."""
    root = config_root or CONFIG_ROOT
    env_cfg = _load_yaml(root, "env.yaml")

    active_profile_name, active_profile = _select_profile(env_cfg, profile)

    bridge_raw = active_profile.get("bridge") or {}
    bridge = BridgeConfig(
        mode=bridge_raw.get("mode", "fake"),
        host=bridge_raw.get("host"),
        port=bridge_raw.get("port"),
        timeout_s=float(bridge_raw.get("timeout_s", 30.0)),
    )

    construction = load_construction_config(
        root,
        overrides=active_profile.get("construction") or {},
    )

    _validate_env(bridge, construction)

    return EnvProfile(
        name=active_profile_name,
        bridge=bridge,
        construction=construction,
        event_log=active_profile.get("event_log"),
        extra=dict(active_profile.get("extra") or {}),
    )


def _validate_env(bridge: BridgeConfig, construction: ConstructionConfig) -> None:
    """Minimal sanity checks for the environment."""
    if bridge.mode not in BRIDGE_MODES:
        raise ValueError(f"Invalid bridge mode: {bridge.mode}")

    if bridge.mode == "ipc" and (bridge.host is None or bridge.port is None):
        raise ValueError("IPC bridge requires both host and port.")

    if construction.max_place_attempts < 1:
        raise ValueError("max_place_attempts must be at least 1")

    for name in ("look_settle_ms", "pour_settle_ms", "provision_settle_ms", "jump_press_ms"):
        if getattr(construction, name) < 0:
            raise ValueError(f"{name} must not be negative")

    if construction.settle_tick_ms <= 0:
        raise ValueError("settle_tick_ms must be positive")

    if "{item}" not in construction.acquire_command or "{count}" not in construction.acquire_command:
        raise ValueError("acquire_command must contain {item} and {count} placeholders")
