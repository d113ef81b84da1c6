# src/bridge/ipc.py
"""
IPC-based capability bridge.

Talks to the agent body (a bot process or server-side mod) over a single
TCP connection carrying newline-delimited UTF-8 JSON.

Request:
    {"id": <int>, "op": "<capability>", "args": {...}}

Response:
    {"id": <int>, "ok": true, "result": ...}
    {"id": <int>, "ok": false, "error": {"kind": "<failure kind>", "message": "..."}}

Calls are synchronous: one request in flight at a time, guarded by a lock.
Responses whose id does not match the pending request are logged and
discarded. Action failures come back as ActionResult; transport and
protocol failures raise BridgeError.
"""

from __future__ import annotations

import json
import logging
import socket
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Mapping, Optional

from spec.bridge import CapabilityBridge
from spec.types import ActionResult, BlockInfo, FailureKind, ItemStack, Vec3

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------


@dataclass
class BridgeError(RuntimeError):
    """
    Raised for transport and protocol failures.

    Examples:
        - connection refused, reset, or timed out
        - malformed response line
        - a query capability reporting an error

    Failed world actions do NOT raise this; they return an ActionResult.
    """

    code: str
    details: Dict[str, Any]

    def __str__(self) -> str:
        return f"BridgeError(code={self.code!r}, details={self.details!r})"


@dataclass
class IpcConfig:
    host: str
    port: int
    timeout_s: float = 30.0


# ---------------------------------------------------------------------------
# Wire encoding
# ---------------------------------------------------------------------------


def encode_vec(v: Vec3) -> Dict[str, float]:
    return {"x": v.x, "y": v.y, "z": v.z}


def decode_vec(raw: Any) -> Vec3:
    return Vec3.of(raw)


def encode_block(block: BlockInfo) -> Dict[str, Any]:
    return {
        "name": block.name,
        "position": encode_vec(block.position),
        "properties": dict(block.properties),
    }


def decode_block(raw: Optional[Mapping[str, Any]]) -> Optional[BlockInfo]:
    if raw is None:
        return None
    return BlockInfo(
        name=str(raw["name"]),
        position=decode_vec(raw["position"]),
        properties=dict(raw.get("properties") or {}),
    )


def decode_item(raw: Optional[Mapping[str, Any]]) -> Optional[ItemStack]:
    if raw is None:
        return None
    return ItemStack(name=str(raw["name"]), count=int(raw["count"]), slot=raw.get("slot"))


def encode_item(item: ItemStack) -> Dict[str, Any]:
    return {"name": item.name, "count": item.count, "slot": item.slot}


def failure_kind(raw: Any) -> FailureKind:
    """Map a wire error kind onto FailureKind; unknown kinds count as transient."""
    try:
        return FailureKind(str(raw))
    except ValueError:
        return FailureKind.TRANSIENT_ACTION_FAILURE


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


class IpcBridge(CapabilityBridge):
    """
    CapabilityBridge over JSON lines.

    `sock` may be supplied pre-connected (tests use socket.socketpair());
    otherwise connect() dials config.host:config.port.
    """

    def __init__(self, config: IpcConfig, *, sock: Optional[socket.socket] = None) -> None:
        self._config = config
        self._sock = sock
        self._lock = Lock()
        self._next_id = 1
        self._recv_buffer = b""
        if sock is not None:
            sock.settimeout(config.timeout_s)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        if self._sock is not None:
            return
        log.info("IpcBridge connecting to %s:%d", self._config.host, self._config.port)
        try:
            sock = socket.create_connection(
                (self._config.host, self._config.port), timeout=self._config.timeout_s
            )
        except OSError as exc:
            raise BridgeError(
                code="connect_failed",
                details={"host": self._config.host, "port": self._config.port, "error": repr(exc)},
            ) from exc
        sock.settimeout(self._config.timeout_s)
        self._sock = sock

    def disconnect(self) -> None:
        with self._lock:
            if self._sock is None:
                return
            log.info("IpcBridge disconnecting")
            try:
                self._sock.close()
            finally:
                self._sock = None
                self._recv_buffer = b""

    def __enter__(self) -> "IpcBridge":
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    # ------------------------------------------------------------------
    # CapabilityBridge: queries
    # ------------------------------------------------------------------

    def get_position(self) -> Vec3:
        return decode_vec(self._query("get_position"))

    def get_heading(self) -> float:
        return float(self._query("get_heading"))

    def block_at(self, position: Vec3) -> Optional[BlockInfo]:
        return decode_block(self._query("block_at", position=encode_vec(position)))

    def find_inventory_item(self, name: str) -> Optional[ItemStack]:
        return decode_item(self._query("find_inventory_item", name=name))

    def get_inventory_counts(self) -> Dict[str, int]:
        raw = self._query("get_inventory_counts") or {}
        return {str(k): int(v) for k, v in raw.items()}

    def can_dig(self, block: BlockInfo) -> bool:
        return bool(self._query("can_dig", block=encode_block(block)))

    # ------------------------------------------------------------------
    # CapabilityBridge: actions
    # ------------------------------------------------------------------

    def equip(self, item: ItemStack, hand: str = "hand") -> ActionResult:
        return self._action("equip", item=encode_item(item), hand=hand)

    def place_block(self, reference: BlockInfo, direction: Vec3) -> ActionResult:
        return self._action(
            "place_block", reference=encode_block(reference), direction=encode_vec(direction)
        )

    def activate_block(self, block: BlockInfo) -> ActionResult:
        return self._action("activate_block", block=encode_block(block))

    def activate_held_item(self) -> ActionResult:
        return self._action("activate_held_item")

    def look_at(self, point: Vec3) -> None:
        self._query("look_at", point=encode_vec(point))

    def set_control_state(self, control: str, state: bool) -> None:
        self._query("set_control_state", control=control, state=bool(state))

    def dig(self, block: BlockInfo) -> ActionResult:
        return self._action("dig", block=encode_block(block))

    def send_command(self, text: str) -> None:
        self._query("send_command", text=text)

    def navigate_to(
        self,
        x: float,
        y: float,
        z: float,
        tolerance: Optional[float] = None,
    ) -> ActionResult:
        return self._action("navigate_to", x=x, y=y, z=z, tolerance=tolerance)

    def sleep(self, ms: int) -> None:
        # Waiting happens on this side; the body keeps ticking on its own.
        time.sleep(max(ms, 0) / 1000.0)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _action(self, op: str, **args: Any) -> ActionResult:
        response = self._call(op, args)
        if response.get("ok"):
            result = response.get("result")
            details = dict(result) if isinstance(result, dict) else {}
            return ActionResult.ok(**details)
        error = response.get("error") or {}
        return ActionResult.fail(
            failure_kind(error.get("kind")), op=op, message=error.get("message", "")
        )

    def _query(self, op: str, **args: Any) -> Any:
        response = self._call(op, args)
        if not response.get("ok"):
            raise BridgeError(code="query_failed", details={"op": op, "error": response.get("error")})
        return response.get("result")

    def _call(self, op: str, args: Mapping[str, Any]) -> Dict[str, Any]:
        with self._lock:
            if self._sock is None:
                raise BridgeError(code="not_connected", details={"op": op})

            request_id = self._next_id
            self._next_id += 1
            msg = {"id": request_id, "op": op, "args": dict(args)}
            encoded = json.dumps(msg, separators=(",", ":")).encode("utf-8") + b"\n"

            try:
                self._sock.sendall(encoded)
                while True:
                    response = self._read_message()
                    if response.get("id") == request_id:
                        return response
                    log.warning(
                        "IpcBridge discarding response id=%r while waiting for %d",
                        response.get("id"),
                        request_id,
                    )
            except socket.timeout as exc:
                raise BridgeError(code="timeout", details={"op": op, "id": request_id}) from exc
            except OSError as exc:
                raise BridgeError(code="io_error", details={"op": op, "error": repr(exc)}) from exc

    def _read_message(self) -> Dict[str, Any]:
        """Block until one complete JSON object line has been received."""
        assert self._sock is not None
        while b"\n" not in self._recv_buffer:
            chunk = self._sock.recv(4096)
            if not chunk:
                raise BridgeError(code="eof", details={})
            self._recv_buffer += chunk

        line, self._recv_buffer = self._recv_buffer.split(b"\n", 1)
        line = line.strip()
        if not line:
            return {}
        try:
            obj = json.loads(line.decode("utf-8"))
        except ValueError as exc:
            raise BridgeError(code="bad_response", details={"line": line[:200]}) from exc
        if not isinstance(obj, dict):
            raise BridgeError(code="bad_response", details={"line": line[:200]})
        return obj
