# tests/test_blueprint_validate.py
"""
Tests for construction.validate: support graph, validation, ordering and diff.
"""

from __future__ import annotations

import pytest

from construction.blueprint import Blueprint, Dig, Place, Pour, Toggle, WalkTo
from construction.validate import (
    diff_blueprints,
    produced_cell,
    suggest_order,
    support_graph,
    validate_blueprint,
)
from machines import get_machine, list_machines
from spec.types import Facing


def bp(steps, required=None, name="test") -> Blueprint:
    return Blueprint(name=name, description="", required_items=required or {}, steps=tuple(steps))


def test_produced_cell_maps_world_direction_to_offset_space() -> None:
    assert produced_cell(Place("x", (0, 0, 0))) == (0, 1, 0)
    assert produced_cell(Place("x", (0, 0, 0), Facing.NORTH.vector)) == (0, 0, 1)
    assert produced_cell(Place("x", (0, 0, 0), Facing.SOUTH.vector)) == (0, 0, -1)
    assert produced_cell(Place("x", (2, 1, 3), Facing.WEST.vector)) == (1, 1, 3)


@pytest.mark.parametrize("name", ["cane", "rail"])
def test_bundled_machines_account_for_every_item(name: str) -> None:
    report = validate_blueprint(get_machine(name))

    assert report.ok, report.to_dict()
    assert not {"unlisted_item", "insufficient_quantity", "bad_requirement"} & set(report.codes())


def test_registry_lists_bundled_machines() -> None:
    assert list_machines() == ["cane", "rail"]
    with pytest.raises(KeyError):
        get_machine("windmill")


def test_support_graph_links_producer_to_consumer() -> None:
    graph = support_graph(bp([Place("a", (0, -1, 1)), Place("b", (0, 0, 1)), WalkTo((0, 0, 0))]))

    assert set(graph.nodes) == {0, 1, 2}
    assert list(graph.edges) == [(0, 1)]
    assert graph.edges[0, 1]["cell"] == (0, 0, 1)


def test_dig_breaks_support_link() -> None:
    graph = support_graph(
        bp([Place("a", (0, -1, 1)), Dig([(0, 0, 1)]), Place("b", (0, 0, 1))])
    )

    assert not graph.has_edge(0, 2)


def test_item_accounting_errors() -> None:
    report = validate_blueprint(
        bp(
            [Place("stone", (0, -1, 1)), Place("stone", (0, 0, 1)), Place("glass", (0, 1, 1)), Pour((0, 0, 2))],
            required={"stone": 1, "lever": 0},
        )
    )

    assert not report.ok
    assert sorted(report.codes()) == [
        "bad_requirement",
        "insufficient_quantity",
        "unlisted_item",
        "unlisted_item",
    ]


def test_support_after_use_is_a_warning() -> None:
    blueprint = bp([Place("stone", (0, 1, 1)), Place("stone", (0, 0, 1))], required={"stone": 2})

    report = validate_blueprint(blueprint)

    assert report.ok
    assert report.codes() == ["support_after_use"]
    assert report.issues[0].index == 0
    assert suggest_order(blueprint) == [1, 0]


def test_toggle_before_place() -> None:
    report = validate_blueprint(
        bp([Toggle("lever", (0, 1, 1)), Place("lever", (0, 0, 1))], required={"lever": 1})
    )

    assert report.codes() == ["toggle_before_place"]


def test_suggest_order_keeps_valid_order_and_rejects_cycles() -> None:
    ordered = bp([Place("a", (0, -1, 1)), WalkTo((0, 0, 0)), Place("b", (0, 0, 1))])
    assert suggest_order(ordered) == [0, 1, 2]

    cyclic = bp([Place("a", (0, 0, 0)), Place("b", (0, 1, 0), Facing.DOWN.vector)])
    with pytest.raises(ValueError):
        suggest_order(cyclic)


def test_diff_blueprints() -> None:
    a = bp([Place("stone", (0, -1, 1)), WalkTo((0, 0, 2))], name="v1")
    b = bp([Place("glass", (0, -1, 1)), WalkTo((0, 0, 2))], name="v2")

    lines = diff_blueprints(a, b)

    assert lines[0] == "--- v1"
    assert any(line.startswith("-place stone") for line in lines)
    assert any(line.startswith("+place glass") for line in lines)
    assert diff_blueprints(a, a) == []
