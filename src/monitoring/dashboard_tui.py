# rich-based TUI dashboard
# src/monitoring/dashboard_tui.py
"""
Live terminal dashboard for construction runs.

Subscribes to the monitoring EventBus and renders, using `rich`:

- Run status: machine, run id, progress, succeeded / failed counts
- Recent steps: the last few STEP_EXECUTED records with their outcome
- Narration: the tail of LOG events emitted by the primitives

Runs in-process next to the builder; no web server, no external services.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Deque, Dict, Optional

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .bus import EventBus
from .events import EventType, MonitoringEvent


class BuildDashboard:
    """
    Dashboard state plus rendering.

    Event handling only updates small in-memory structures; rendering
    happens on the dashboard's own thread inside run().
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        console: Optional[Console] = None,
        max_steps: int = 12,
        max_messages: int = 8,
    ) -> None:
        self._bus = bus
        self._console = console or Console()
        self._lock = threading.Lock()

        self._state: Dict[str, Any] = {
            "machine": None,
            "run_id": None,
            "planned": 0,
            "done": 0,
            "failed": 0,
            "finished": False,
            "cancelled": False,
        }
        self._steps: Deque[Dict[str, Any]] = deque(maxlen=max_steps)
        self._messages: Deque[str] = deque(maxlen=max_messages)

        self._bus.subscribe(self._on_event)

    def close(self) -> None:
        self._bus.unsubscribe(self._on_event)

    @property
    def state(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._state)

    # --------------------------------------------------------
    # Event handler
    # --------------------------------------------------------

    def _on_event(self, event: MonitoringEvent) -> None:
        et = event.event_type
        payload = event.payload or {}

        with self._lock:
            if et == EventType.RUN_STARTED:
                self._state.update(
                    machine=payload.get("name"),
                    run_id=event.correlation_id,
                    planned=int(payload.get("steps", 0)),
                    done=0,
                    failed=0,
                    finished=False,
                    cancelled=False,
                )
                self._steps.clear()
                self._messages.clear()

            elif et == EventType.STEP_EXECUTED:
                self._state["done"] += 1
                if not payload.get("success", False):
                    self._state["failed"] += 1
                self._steps.append(dict(payload))

            elif et == EventType.RUN_FINISHED:
                self._state["finished"] = True

            elif et == EventType.CONTROL_COMMAND:
                if payload.get("cmd") == "CANCEL_RUN":
                    self._state["cancelled"] = True
                elif payload.get("cmd") == "RESET_CANCEL":
                    self._state["cancelled"] = False

            elif et == EventType.LOG:
                level = payload.get("level", "INFO")
                self._messages.append(f"[{level}] {event.message}")

    # --------------------------------------------------------
    # Rendering helpers
    # --------------------------------------------------------

    def _render_status_panel(self) -> Panel:
        s = self._state
        if s["finished"]:
            status = "[bold green]finished[/bold green]"
        elif s["cancelled"]:
            status = "[bold yellow]cancelling[/bold yellow]"
        elif s["machine"]:
            status = "[bold cyan]building[/bold cyan]"
        else:
            status = "idle"

        txt = Text.from_markup(
            f"[bold]Machine:[/bold] {s['machine'] or '<none>'}   "
            f"[bold]Run:[/bold] {s['run_id'] or '-'}   "
            f"[bold]Status:[/bold] {status}\n"
            f"[bold]Steps:[/bold] {s['done']}/{s['planned']}   "
            f"[bold]Failed:[/bold] {s['failed']}"
        )
        return Panel(txt, title="Build", border_style="cyan")

    def _render_steps_panel(self) -> Panel:
        table = Table(show_header=True, header_style="bold magenta", expand=True)
        table.add_column("#", justify="right", width=4)
        table.add_column("Step")
        table.add_column("Result", width=26)

        if not self._steps:
            table.add_row("-", "<no steps yet>", "-")
        for rec in self._steps:
            if rec.get("success"):
                result = "[green]ok[/green]"
            else:
                result = f"[red]{rec.get('error') or 'failed'}[/red]"
            table.add_row(str(rec.get("index", "?")), str(rec.get("description", "")), result)

        return Panel(table, title="Recent Steps", border_style="magenta")

    def _render_log_panel(self) -> Panel:
        txt = Text("\n".join(self._messages) if self._messages else "<no narration yet>")
        return Panel(txt, title="Narration", border_style="green")

    def build_layout(self) -> Layout:
        with self._lock:
            layout = Layout()
            layout.split(
                Layout(self._render_status_panel(), name="top", size=4),
                Layout(name="middle", ratio=1),
            )
            layout["middle"].split_row(
                Layout(self._render_steps_panel(), name="steps", ratio=3),
                Layout(self._render_log_panel(), name="log", ratio=2),
            )
            return layout

    # --------------------------------------------------------
    # Main loop
    # --------------------------------------------------------

    def run(self, stop: threading.Event, refresh_per_second: float = 4.0) -> None:
        """
        Render until `stop` is set.

        Blocks the calling thread; start it on a daemon thread next to the
        builder.
        """
        refresh_delay = 1.0 / max(refresh_per_second, 0.1)
        with Live(
            self.build_layout(),
            console=self._console,
            refresh_per_second=refresh_per_second,
        ) as live:
            while not stop.wait(refresh_delay):
                live.update(self.build_layout())
            live.update(self.build_layout())
