# src/bridge/testing/__init__.py
"""In-memory bridge and world used by tests and blueprint simulation."""

from .fakes import BridgeCall, FakeBridge, FakeWorld

__all__ = ["BridgeCall", "FakeBridge", "FakeWorld"]
