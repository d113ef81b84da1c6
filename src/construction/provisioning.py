# src/construction/provisioning.py
"""
Inventory provisioning.

Compares required item quantities against live inventory counts and sends
one acquisition command per short item, for exactly the shortfall. It never
over-requests and never takes anything away. After each request it settles
briefly so the environment can apply it; there is no read-back check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from .frame import ConstructionSession


@dataclass
class ProvisionRequest:
    """One acquisition command that was sent (or attempted)."""
    item: str
    have: int
    need: int
    requested: int
    command: str
    sent: bool = True


@dataclass
class ProvisionReport:
    requests: List[ProvisionRequest] = field(default_factory=list)
    satisfied: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.sent for r in self.requests)

    def requested(self) -> Dict[str, int]:
        return {r.item: r.requested for r in self.requests if r.sent}


def shortfall(required: Mapping[str, int], counts: Mapping[str, int]) -> Dict[str, int]:
    """Quantity missing per item; items already covered are omitted."""
    missing: Dict[str, int] = {}
    for item, need in required.items():
        have = int(counts.get(item, 0))
        if have < need:
            missing[item] = need - have
    return missing


class InventoryProvisioner:
    """Tops the agent's inventory up to a required-item mapping."""

    def __init__(self, session: ConstructionSession) -> None:
        self._session = session
        self._bridge = session.bridge
        self._cfg = session.config

    def provision(self, required: Mapping[str, int]) -> ProvisionReport:
        self._session.narrate(logging.INFO, "Checking and acquiring necessary items...")
        report = ProvisionReport()

        for item, need in required.items():
            # Counts are re-read per item so each comparison sees the latest state.
            counts = self._bridge.get_inventory_counts()
            have = int(counts.get(item, 0))
            amount = shortfall({item: need}, counts).get(item, 0)
            if not amount:
                self._session.narrate(logging.INFO, "Already have enough %s.", item)
                report.satisfied.append(item)
                continue

            command = self._cfg.acquire_command.format(item=item, count=amount)
            self._session.narrate(
                logging.INFO,
                "Inventory has %d of %s, need %d. Requesting %d.",
                have,
                item,
                need,
                amount,
            )
            request = ProvisionRequest(
                item=item, have=have, need=need, requested=amount, command=command
            )
            try:
                self._bridge.send_command(command)
            except Exception as exc:
                self._session.narrate(logging.WARNING, "Acquisition request for %s failed: %r", item, exc)
                request.sent = False
            report.requests.append(request)
            self._session.settler.wait("provision", self._cfg.provision_settle_ms)

        self._session.narrate(logging.INFO, "Finished acquiring items.")
        return report
