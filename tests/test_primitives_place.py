# tests/test_primitives_place.py
"""
Unit tests for ActionPrimitives.place_at.

The fake world is flat: grass at y <= 63, air above. The agent stands at
(0.5, 64, 0.5), so offset (0, -1, 1) is the grass cell (0, 63, -1) and a
placement on its top face fills (0, 64, -1).
"""

from __future__ import annotations

import pytest

from bridge.testing.fakes import FakeBridge, FakeWorld
from construction.frame import ConstructionSession
from construction.primitives import ActionPrimitives
from env.schema import ConstructionConfig
from spec.types import ActionResult, FailureKind, Vec3


def make_prims(bridge: FakeBridge, **cfg) -> ActionPrimitives:
    session = ConstructionSession(bridge, config=ConstructionConfig(**cfg))
    session.set_origin()
    return ActionPrimitives(session)


def test_place_on_top_face_succeeds_first_try() -> None:
    bridge = FakeBridge(inventory={"stone": 2})
    prims = make_prims(bridge)

    result = prims.place_at("stone", (0, -1, 1))

    assert result.success
    assert result.error is None
    assert result.details["attempts"] == 1
    assert bridge.world.name_at((0, 64, -1)) == "stone"
    assert bridge.inventory["stone"] == 1
    assert [c.name for c in bridge.calls] == ["equip", "place_block"]


def test_place_against_side_face_uses_world_direction() -> None:
    world = FakeWorld(ground_y=62)
    world.set((0, 63, -1), "oak_planks")
    bridge = FakeBridge(world, inventory={"glass": 1})
    prims = make_prims(bridge)

    result = prims.place_at("glass", (0, -1, 1), Vec3(1, 0, 0))

    assert result.success
    assert world.name_at((1, 63, -1)) == "glass"


def test_repeat_placement_reports_success_without_changes() -> None:
    bridge = FakeBridge(inventory={"stone": 2})
    prims = make_prims(bridge)

    assert prims.place_at("stone", (0, -1, 1)).success
    before = bridge.world.edits()

    again = prims.place_at("stone", (0, -1, 1))

    assert again.success
    assert again.details["confirmation_lost"] is True
    assert bridge.world.edits() == before
    assert bridge.inventory["stone"] == 1


def test_transient_failures_are_retried() -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    bridge.place_failures = [
        ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE),
        RuntimeError("server hiccup"),
    ]
    prims = make_prims(bridge)

    result = prims.place_at("stone", (0, -1, 1))

    assert result.success
    assert result.details["attempts"] == 3
    assert len(bridge.calls_named("place_block")) == 3
    assert bridge.world.name_at((0, 64, -1)) == "stone"


def test_confirmation_loss_on_a_retry_counts_as_placed() -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    bridge.place_failures = [
        ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE),
        ActionResult.fail(FailureKind.CONFIRMATION_LOST),
        ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE),
    ]
    prims = make_prims(bridge)

    result = prims.place_at("stone", (0, -1, 1))

    assert result.success
    assert result.details["attempts"] == 2
    assert result.details["confirmation_lost"] is True
    assert len(bridge.calls_named("place_block")) == 2
    assert len(bridge.place_failures) == 1

def test_gives_up_after_max_attempts() -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    bridge.place_failures = [
        ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE) for _ in range(4)
    ]
    prims = make_prims(bridge)

    result = prims.place_at("stone", (0, -1, 1))

    assert not result.success
    assert result.error is FailureKind.TRANSIENT_ACTION_FAILURE
    assert len(bridge.calls_named("place_block")) == 3
    assert len(bridge.place_failures) == 1
    assert bridge.world.name_at((0, 64, -1)) == "air"


def test_max_attempts_is_configurable() -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    bridge.place_failures = [ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE)]
    prims = make_prims(bridge, max_place_attempts=1)

    result = prims.place_at("stone", (0, -1, 1))

    assert not result.success
    assert len(bridge.calls_named("place_block")) == 1


def test_unloaded_support_fails_without_retry_or_equip() -> None:
    bridge = FakeBridge(FakeWorld(loaded_radius=2), inventory={"stone": 1})
    prims = make_prims(bridge)

    result = prims.place_at("stone", (0, -1, 10))

    assert not result.success
    assert result.error is FailureKind.UNSUPPORTED_TARGET
    assert bridge.calls == []


def test_missing_item_fails_before_placing() -> None:
    bridge = FakeBridge()
    prims = make_prims(bridge)

    result = prims.place_at("piston", (0, -1, 1))

    assert not result.success
    assert result.error is FailureKind.MISSING_RESOURCE
    assert bridge.calls_named("place_block") == []


def test_facing_looks_from_eye_height_and_settles() -> None:
    bridge = FakeBridge(inventory={"observer": 1})
    prims = make_prims(bridge)

    result = prims.place_at("observer", (0, -1, 1), facing="down")

    assert result.success
    looks = bridge.calls_named("look_at")
    assert len(looks) == 1
    x, y, z = looks[0].args
    assert x == pytest.approx(0.5)
    assert y == pytest.approx(64.0 + 1.62 - 1.0)
    assert z == pytest.approx(0.5)
    assert bridge.clock_ms == 200
    names = [c.name for c in bridge.calls]
    assert names.index("look_at") < names.index("place_block")


def test_invalid_facing_is_ignored() -> None:
    bridge = FakeBridge(inventory={"observer": 1})
    prims = make_prims(bridge)

    result = prims.place_at("observer", (0, -1, 1), facing="sideways")

    assert result.success
    assert bridge.calls_named("look_at") == []


def test_occupancy_check_is_off_by_default() -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    bridge.world.set((0, 64, -1), "dirt")
    prims = make_prims(bridge)

    result = prims.place_at("stone", (0, -1, 1))

    # The bridge itself refuses, so the attempt budget is spent.
    assert not result.success
    assert len(bridge.calls_named("place_block")) == 3


def test_occupancy_check_when_enabled() -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    bridge.world.set((0, 64, -1), "dirt")
    prims = make_prims(bridge, skip_air_check=False)

    result = prims.place_at("stone", (0, -1, 1))

    assert not result.success
    assert result.error is FailureKind.TARGET_OCCUPIED
    assert result.details["occupant"] == "dirt"
    assert bridge.calls_named("place_block") == []


def test_unexpected_bridge_error_is_contained(monkeypatch) -> None:
    bridge = FakeBridge(inventory={"stone": 1})
    prims = make_prims(bridge)

    def boom(position):
        raise ConnectionError("bridge went away")

    monkeypatch.setattr(bridge, "block_at", boom)

    result = prims.place_at("stone", (0, -1, 1))

    assert not result.success
    assert result.error is FailureKind.EXECUTION_EXCEPTION
    assert result.details["op"] == "place_at"
