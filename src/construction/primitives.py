# src/construction/primitives.py
"""
Construction primitives.

Each primitive is one environment-affecting action (equip, place, pour,
toggle, dig, walk, jump) with its own retry / failure handling:

- Coordinates are local offsets resolved through the session's origin frame.
- Every outcome is an ActionResult with a FailureKind on failure.
- Every decision is narrated through the session.
- Nothing raises past this boundary; a failed primitive degrades the
  structure, it never aborts the build.

Re-running a primitive with identical arguments in an unchanged world is
safe: an already placed block comes back as a lost confirmation (success),
an already empty cell is skipped, a mismatched toggle target is left alone.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from spec.types import (
    UP,
    ActionResult,
    BlockInfo,
    Facing,
    FailureKind,
    Offset,
    Vec3,
)

from .frame import ConstructionSession

FacingArg = Union[Facing, str, None]


def liquid_block_for(item: str) -> str:
    """Block produced by emptying a liquid container ("water_bucket" -> "water")."""
    suffix = "_bucket"
    return item[: -len(suffix)] if item.endswith(suffix) else item


class ActionPrimitives:
    """
    Primitive actions bound to one ConstructionSession.

    Public contract: every method returns an ActionResult and never raises.
    Unexpected exceptions from the bridge are caught, logged and turned
    into FailureKind.EXECUTION_EXCEPTION.
    """

    def __init__(self, session: ConstructionSession) -> None:
        self._session = session
        self._bridge = session.bridge
        self._cfg = session.config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def equip(self, item: str, hand: Optional[str] = None) -> ActionResult:
        """Equip the first inventory stack named `item`."""
        return self._guarded("equip", self._equip, item, hand or self._cfg.hand)

    def place_at(
        self,
        item: str,
        offset: Any,
        direction: Any = UP,
        facing: FacingArg = None,
    ) -> ActionResult:
        """Place `item` against the block at `offset`, on its `direction` face."""
        return self._guarded(
            "place_at",
            self._place_at,
            item,
            Offset.of(offset),
            Vec3.of(direction),
            facing,
        )

    def pour_liquid(self, offset: Any) -> ActionResult:
        """Empty the configured liquid container toward the point at `offset`."""
        return self._guarded("pour_liquid", self._pour_liquid, Offset.of(offset))

    def toggle_block(self, block_type: str, offset: Any) -> ActionResult:
        """Activate the block at `offset` only if it is exactly `block_type`."""
        return self._guarded("toggle_block", self._toggle_block, block_type, Offset.of(offset))

    def dig_list(self, offsets: Iterable[Any]) -> ActionResult:
        """Dig every offset independently; failures never stop the batch."""
        return self._guarded("dig_list", self._dig_list, [Offset.of(o) for o in offsets])

    def walk_to(self, offset: Any) -> ActionResult:
        return self._guarded("walk_to", self._walk_to, Offset.of(offset))

    def walk_north(self, steps: int) -> ActionResult:
        """Walk `steps` blocks toward negative world z from the current position."""
        return self._guarded("walk_north", self._walk_north, int(steps))

    def jump_for(self, duration_ms: int) -> ActionResult:
        """Jump repeatedly for `duration_ms`, stopping early on interrupt."""
        return self._guarded("jump_for", self._jump_for, int(duration_ms))

    def set_control(self, control: str, state: bool) -> ActionResult:
        return self._guarded("set_control", self._set_control, control, bool(state))

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _equip(self, item: str, hand: str) -> ActionResult:
        stack = self._bridge.find_inventory_item(item)
        if stack is None:
            self._narrate(logging.INFO, "No %s found in inventory.", item)
            return ActionResult.fail(FailureKind.MISSING_RESOURCE, item=item, hand=hand)

        try:
            result = self._bridge.equip(stack, hand)
        except Exception as exc:
            self._narrate(logging.WARNING, "Error equipping %s to %s: %r", item, hand, exc)
            return ActionResult.fail(
                FailureKind.TRANSIENT_ACTION_FAILURE, item=item, hand=hand, exception=repr(exc)
            )

        if not result.success:
            self._narrate(
                logging.WARNING,
                "Error equipping %s to %s: %s",
                item,
                hand,
                _kind_name(result.error),
            )
            return ActionResult.fail(
                result.error or FailureKind.TRANSIENT_ACTION_FAILURE, item=item, hand=hand
            )

        self._narrate(logging.DEBUG, "Equipped %s to %s", item, hand)
        return ActionResult.ok(item=item, hand=hand)

    def _place_at(
        self,
        item: str,
        offset: Offset,
        direction: Vec3,
        facing: FacingArg,
    ) -> ActionResult:
        target = self._session.resolve(offset)

        # A missing support block is not transient: fail without retrying.
        block = self._bridge.block_at(target)
        if block is None:
            self._narrate(
                logging.WARNING,
                "%s No supporting block, cannot place %s",
                target,
                item,
            )
            return ActionResult.fail(
                FailureKind.UNSUPPORTED_TARGET, item=item, offset=offset.as_tuple()
            )

        equipped = self.equip(item)
        if not equipped:
            self._narrate(logging.WARNING, "Cannot equip %s.", item)
            return ActionResult.fail(
                equipped.error or FailureKind.MISSING_RESOURCE,
                item=item,
                offset=offset.as_tuple(),
            )

        if facing is not None:
            self._face(facing)

        if not self._cfg.skip_air_check:
            occupied = self._insertion_occupant(block, direction)
            if occupied is not None:
                self._narrate(
                    logging.WARNING,
                    "Target insertion position occupied by %s, cannot place %s",
                    occupied.name,
                    item,
                )
                return ActionResult.fail(
                    FailureKind.TARGET_OCCUPIED,
                    item=item,
                    offset=offset.as_tuple(),
                    occupant=occupied.name,
                )

        max_attempts = self._cfg.max_place_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                result = self._bridge.place_block(block, direction)
            except Exception as exc:
                result = ActionResult.fail(
                    FailureKind.TRANSIENT_ACTION_FAILURE, exception=repr(exc)
                )

            if result.success:
                self._narrate(
                    logging.INFO,
                    "Placed %s at %s in direction %s",
                    item,
                    block.position,
                    direction,
                )
                return ActionResult.ok(item=item, offset=offset.as_tuple(), attempts=attempt)

            if result.error is FailureKind.CONFIRMATION_LOST:
                self._narrate(
                    logging.INFO,
                    "Placed %s at %s, but no block update confirmation arrived (ignored)",
                    item,
                    block.position,
                )
                return ActionResult.ok(
                    item=item,
                    offset=offset.as_tuple(),
                    attempts=attempt,
                    confirmation_lost=True,
                )

            self._narrate(
                logging.WARNING,
                "Attempt %d/%d to place %s failed: %s %s",
                attempt,
                max_attempts,
                item,
                _kind_name(result.error),
                result.details.get("exception", ""),
            )

        self._narrate(logging.ERROR, "Giving up on %s at %s after %d attempts", item, offset, max_attempts)
        return ActionResult.fail(
            FailureKind.TRANSIENT_ACTION_FAILURE,
            item=item,
            offset=offset.as_tuple(),
            attempts=max_attempts,
        )

    def _pour_liquid(self, offset: Offset) -> ActionResult:
        container = self._cfg.liquid_item
        self._narrate(logging.INFO, "Pouring %s at relative coords %s", container, offset)
        target = self._session.resolve(offset)

        equipped = self.equip(container)
        if not equipped:
            self._narrate(logging.WARNING, "Cannot equip %s.", container)
            return ActionResult.fail(
                equipped.error or FailureKind.MISSING_RESOURCE, offset=offset.as_tuple()
            )

        self._narrate(logging.DEBUG, "Looking at target point %s to pour", target)
        self._bridge.look_at(target)
        self._session.settler.wait("look", self._cfg.look_settle_ms)

        result = self._bridge.activate_held_item()
        if not result.success:
            self._narrate(logging.WARNING, "Error pouring %s: %s", container, _kind_name(result.error))
            return ActionResult.fail(
                result.error or FailureKind.TRANSIENT_ACTION_FAILURE, offset=offset.as_tuple()
            )

        liquid = liquid_block_for(container)
        settled = self._session.settler.wait(
            "pour",
            self._cfg.pour_settle_ms,
            until=lambda: self._block_named(target, liquid),
        )
        self._narrate(logging.INFO, "Poured %s at %s", container, target)
        return ActionResult.ok(offset=offset.as_tuple(), acknowledged=settled)

    def _toggle_block(self, block_type: str, offset: Offset) -> ActionResult:
        self._narrate(logging.INFO, "Attempting to toggle %s at relative coords %s", block_type, offset)
        pos = self._session.resolve(offset).floored()
        block = self._bridge.block_at(pos)

        if block is None or block.name != block_type:
            found = block.name if block is not None else "nothing"
            self._narrate(
                logging.INFO,
                "Block %s not found at relative coords %s -> world coords %s. Found %s.",
                block_type,
                offset,
                pos,
                found,
            )
            return ActionResult.fail(
                FailureKind.TYPE_MISMATCH, expected=block_type, found=found, offset=offset.as_tuple()
            )

        try:
            result = self._bridge.activate_block(block)
        except Exception as exc:
            result = ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE, exception=repr(exc))

        if not result.success:
            self._narrate(
                logging.WARNING,
                "Error activating block at %s: %s %s",
                pos,
                _kind_name(result.error),
                result.details.get("exception", ""),
            )
            return ActionResult.fail(
                result.error or FailureKind.TRANSIENT_ACTION_FAILURE, offset=offset.as_tuple()
            )

        self._narrate(logging.INFO, "Activated %s at %s", block_type, pos)
        return ActionResult.ok(block=block_type, offset=offset.as_tuple())

    def _dig_list(self, offsets: List[Offset]) -> ActionResult:
        self._narrate(logging.INFO, "Digging %d cells from coordinate list", len(offsets))
        self._session.ensure_origin()

        outcomes: List[Dict[str, Any]] = []
        first_error: Optional[FailureKind] = None

        for offset in offsets:
            outcome = self._dig_one(offset)
            outcomes.append({"offset": offset.as_tuple(), "status": outcome.details["status"]})
            if not outcome.success and first_error is None:
                first_error = outcome.error

        if first_error is None:
            return ActionResult.ok(outcomes=outcomes)
        return ActionResult.fail(first_error, outcomes=outcomes)

    def _dig_one(self, offset: Offset) -> ActionResult:
        pos = self._session.resolve(offset).floored()
        try:
            block = self._bridge.block_at(pos)
            if block is not None and block.is_air:
                self._narrate(logging.INFO, "Nothing to dig at %s, already empty", pos)
                return ActionResult.ok(status="empty")

            if block is None or not self._bridge.can_dig(block):
                found = block.name if block is not None else "out of sight"
                self._narrate(logging.WARNING, "Cannot dig block at %s. Block is %s", pos, found)
                return ActionResult.fail(FailureKind.NOT_DIGGABLE, status="not_diggable")

            self._narrate(
                logging.INFO,
                "Digging block at relative coords %s -> world coords %s",
                offset,
                pos,
            )
            result = self._bridge.dig(block)
        except Exception as exc:
            self._narrate(logging.WARNING, "Could not dig block at %s: %r", pos, exc)
            return ActionResult.fail(FailureKind.TRANSIENT_ACTION_FAILURE, status="failed")

        if not result.success:
            self._narrate(logging.WARNING, "Could not dig block at %s: %s", pos, _kind_name(result.error))
            return ActionResult.fail(
                result.error or FailureKind.TRANSIENT_ACTION_FAILURE, status="failed"
            )
        return ActionResult.ok(status="dug")

    def _walk_to(self, offset: Offset) -> ActionResult:
        target = self._session.resolve(offset)
        self._narrate(logging.INFO, "Going to relative coords %s -> world coords %s", offset, target)
        result = self._bridge.navigate_to(target.x, target.y, target.z)
        if not result.success:
            self._narrate(logging.WARNING, "Could not reach %s", target)
            return ActionResult.fail(FailureKind.NAV_FAILURE, offset=offset.as_tuple())
        return ActionResult.ok(offset=offset.as_tuple())

    def _walk_north(self, steps: int) -> ActionResult:
        pos = Vec3.of(self._bridge.get_position())
        self._narrate(logging.INFO, "Walking north %d blocks...", steps)
        result = self._bridge.navigate_to(pos.x, pos.y, pos.z - steps, tolerance=1)
        if not result.success:
            self._narrate(logging.WARNING, "Could not walk north %d blocks from %s", steps, pos)
            return ActionResult.fail(FailureKind.NAV_FAILURE, steps=steps)
        return ActionResult.ok(steps=steps)

    def _jump_for(self, duration_ms: int) -> ActionResult:
        self._narrate(logging.INFO, "Jumping for %.1f seconds.", duration_ms / 1000)
        press = max(self._cfg.jump_press_ms, 1)
        elapsed = 0
        interrupted = False
        try:
            while elapsed < duration_ms:
                if self._session.interrupt.is_set():
                    self._narrate(logging.INFO, "Jumping interrupted.")
                    interrupted = True
                    break
                self._bridge.set_control_state("jump", True)
                self._session.settler.wait("jump", press)
                self._bridge.set_control_state("jump", False)
                self._session.settler.wait("jump", press)
                elapsed += 2 * press
        finally:
            self._bridge.set_control_state("jump", False)

        self._narrate(logging.INFO, "Stopped jumping after %dms.", elapsed)
        if interrupted:
            return ActionResult.fail(FailureKind.INTERRUPTED, elapsed_ms=elapsed)
        return ActionResult.ok(elapsed_ms=elapsed)

    def _set_control(self, control: str, state: bool) -> ActionResult:
        self._bridge.set_control_state(control, state)
        self._narrate(logging.DEBUG, "Control %s -> %s", control, state)
        return ActionResult.ok(control=control, state=state)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _face(self, facing: FacingArg) -> None:
        """Look one unit toward `facing` from eye height and let it register."""
        try:
            direction = facing if isinstance(facing, Facing) else Facing(str(facing).lower())
        except ValueError:
            self._narrate(logging.WARNING, "Invalid facing direction: %s. Ignoring.", facing)
            return

        head = Vec3.of(self._bridge.get_position()).plus(Vec3(0, self._cfg.eye_height, 0))
        self._narrate(logging.INFO, "Looking %s to place block.", direction.value)
        self._bridge.look_at(head.plus(direction.vector))
        self._session.settler.wait("look", self._cfg.look_settle_ms)

    def _insertion_occupant(self, block: BlockInfo, direction: Vec3) -> Optional[BlockInfo]:
        """Non-air block already in the cell the placement would fill, if any."""
        occupant = self._bridge.block_at(block.position.plus(direction))
        if occupant is not None and not occupant.is_air:
            return occupant
        return None

    def _block_named(self, position: Vec3, name: str) -> bool:
        block = self._bridge.block_at(position)
        return block is not None and block.name == name

    def _guarded(self, op: str, fn: Callable[..., ActionResult], *args: Any) -> ActionResult:
        try:
            return fn(*args)
        except Exception as exc:
            self._session.narrate(
                logging.ERROR, "Primitive %s raised unexpectedly: %r", op, exc, exc_info=True
            )
            return ActionResult.fail(FailureKind.EXECUTION_EXCEPTION, op=op, exception=repr(exc))

    def _narrate(self, level: int, msg: str, *args: Any) -> None:
        self._session.narrate(level, msg, *args)


def _kind_name(kind: Optional[FailureKind]) -> str:
    return kind.value if kind is not None else "unknown"
