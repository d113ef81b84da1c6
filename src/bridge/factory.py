# src/bridge/factory.py
"""Bridge construction from the active environment profile."""

from __future__ import annotations

import logging

from env.schema import EnvProfile
from spec.bridge import CapabilityBridge

from .ipc import IpcBridge, IpcConfig
from .testing.fakes import FakeBridge

log = logging.getLogger(__name__)


def create_bridge_for_env(env: EnvProfile) -> CapabilityBridge:
    """
    Return an unconnected bridge for `env.bridge.mode`.

    - "ipc"  -> IpcBridge (call connect() or use it as a context manager)
    - "fake" -> FakeBridge over a flat in-memory world, unlimited items
    """
    cfg = env.bridge
    if cfg.mode == "ipc":
        if cfg.host is None or cfg.port is None:
            raise ValueError("ipc bridge requires host and port")
        log.info("Using IPC bridge at %s:%s", cfg.host, cfg.port)
        return IpcBridge(IpcConfig(host=cfg.host, port=int(cfg.port), timeout_s=cfg.timeout_s))
    if cfg.mode == "fake":
        log.info("Using in-memory fake bridge")
        return FakeBridge(unlimited=True)
    raise ValueError(f"Unsupported bridge mode: {cfg.mode!r}")
