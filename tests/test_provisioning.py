# tests/test_provisioning.py
"""
Tests for construction.provisioning.

Covers:
- Exactly the shortfall is requested, once per short item
- Satisfied items produce no command
- Settling after every request
- A failing command is reported, not raised
"""

from __future__ import annotations

from bridge.testing.fakes import FakeBridge
from construction.frame import ConstructionSession
from construction.provisioning import InventoryProvisioner, shortfall
from env.schema import ConstructionConfig


def make_provisioner(bridge: FakeBridge, **cfg) -> InventoryProvisioner:
    return InventoryProvisioner(ConstructionSession(bridge, config=ConstructionConfig(**cfg)))


def test_requests_full_amount_when_empty() -> None:
    bridge = FakeBridge(inventory={"torch": 0})

    report = make_provisioner(bridge).provision({"torch": 2})

    assert report.success
    assert report.requested() == {"torch": 2}
    assert bridge.commands == ["/give @s torch 2"]
    assert bridge.inventory["torch"] == 2


def test_no_request_when_already_satisfied() -> None:
    bridge = FakeBridge(inventory={"torch": 5})

    report = make_provisioner(bridge).provision({"torch": 2})

    assert report.requests == []
    assert report.satisfied == ["torch"]
    assert bridge.commands == []
    assert bridge.inventory["torch"] == 5


def test_requests_only_the_difference_in_declared_order() -> None:
    bridge = FakeBridge(inventory={"glass": 1, "hopper": 6})

    report = make_provisioner(bridge).provision({"glass": 3, "hopper": 6, "chest": 2})

    assert bridge.commands == ["/give @s glass 2", "/give @s chest 2"]
    assert [r.item for r in report.requests] == ["glass", "chest"]
    assert report.satisfied == ["hopper"]
    # One settle per request.
    assert bridge.clock_ms == 2 * 200


def test_custom_acquire_command() -> None:
    bridge = FakeBridge()

    make_provisioner(bridge, acquire_command="/give Builder {item} {count}").provision({"rail": 1})

    assert bridge.commands == ["/give Builder rail 1"]


def test_failed_command_is_reported(monkeypatch) -> None:
    bridge = FakeBridge()

    def refuse(text: str) -> None:
        raise PermissionError("commands disabled")

    monkeypatch.setattr(bridge, "send_command", refuse)

    report = make_provisioner(bridge).provision({"rail": 1, "lever": 1})

    assert not report.success
    assert [r.sent for r in report.requests] == [False, False]
    assert report.requested() == {}


def test_shortfall() -> None:
    assert shortfall({"a": 3, "b": 1, "c": 2}, {"a": 1, "b": 4}) == {"a": 2, "c": 2}
    assert shortfall({}, {"a": 1}) == {}
