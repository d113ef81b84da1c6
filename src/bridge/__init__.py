# bridge package
# src/bridge/__init__.py
"""
Concrete CapabilityBridge implementations.

Exports:
    - IpcBridge / IpcConfig: JSON-lines transport to a live agent body
    - BridgeError: transport and protocol failures
    - create_bridge_for_env: factory wired to env.yaml profiles
"""

from __future__ import annotations

from .factory import create_bridge_for_env
from .ipc import BridgeError, IpcBridge, IpcConfig

__all__ = [
    "BridgeError",
    "IpcBridge",
    "IpcConfig",
    "create_bridge_for_env",
]
