# EventBus for monitoring events and control commands
"""
Event bus for construction monitoring.

Two channels share one bus:

- Events (MonitoringEvent) fan out synchronously to subscribers: session
  narration, step records, the JSONL logger and the dashboard.
- Commands (ControlCommand) go through a pending queue. post_command() only
  enqueues, so it is safe from a signal handler that interrupted the thread
  in the middle of a publish. Queued commands are delivered by
  dispatch_pending(), which publish() and publish_command() call, and which
  the runner calls between steps.

Subscriber lists are immutable tuples swapped under a lock on (un)subscribe;
delivery reads the current tuple without locking.
"""

from __future__ import annotations

import logging
import queue
from threading import Lock
from typing import Callable, Tuple

from .events import ControlCommand, MonitoringEvent

log = logging.getLogger(__name__)

SubscriberFn = Callable[[MonitoringEvent], None]
CommandHandlerFn = Callable[[ControlCommand], None]


class EventBus:
    """
    In-process event bus for one construction process.

    A failing subscriber or handler is logged and skipped; the others still
    run. Commands are delivered in posting order, one dispatcher at a time.
    """

    def __init__(self) -> None:
        self._subscribers: Tuple[SubscriberFn, ...] = ()
        self._cmd_handlers: Tuple[CommandHandlerFn, ...] = ()
        self._registry_lock = Lock()
        self._dispatching = Lock()
        self._pending: "queue.SimpleQueue[ControlCommand]" = queue.SimpleQueue()

    # --------------------------------------------------------
    # Subscription
    # --------------------------------------------------------

    def subscribe(self, fn: SubscriberFn) -> None:
        with self._registry_lock:
            self._subscribers = self._subscribers + (fn,)

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """Remove a subscriber; unknown callables are ignored."""
        with self._registry_lock:
            self._subscribers = tuple(s for s in self._subscribers if s != fn)

    def subscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._registry_lock:
            self._cmd_handlers = self._cmd_handlers + (fn,)

    def unsubscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._registry_lock:
            self._cmd_handlers = tuple(h for h in self._cmd_handlers if h != fn)

    # --------------------------------------------------------
    # Events
    # --------------------------------------------------------

    def publish(self, event: MonitoringEvent) -> None:
        for fn in self._subscribers:
            try:
                fn(event)
            except Exception:
                log.exception("Monitoring subscriber %r failed", fn)
        self.dispatch_pending()

    # --------------------------------------------------------
    # Commands
    # --------------------------------------------------------

    def post_command(self, cmd: ControlCommand) -> None:
        """Queue a command without delivering it. Takes no lock."""
        self._pending.put(cmd)

    def publish_command(self, cmd: ControlCommand) -> None:
        """Queue a command and deliver everything pending."""
        self.post_command(cmd)
        self.dispatch_pending()

    def dispatch_pending(self) -> int:
        """
        Deliver queued commands to the current handlers.

        Returns the number delivered by this call. A call made while another
        dispatch is running (on any thread, including a handler publishing
        an event) returns 0 and leaves the queue to that dispatcher.
        """
        delivered = 0
        while not self._pending.empty():
            if not self._dispatching.acquire(blocking=False):
                break
            try:
                while True:
                    try:
                        cmd = self._pending.get_nowait()
                    except queue.Empty:
                        break
                    self._deliver(cmd)
                    delivered += 1
            finally:
                self._dispatching.release()
        return delivered

    def _deliver(self, cmd: ControlCommand) -> None:
        for fn in self._cmd_handlers:
            try:
                fn(cmd)
            except Exception:
                log.exception("Command handler %r failed for %s", fn, cmd.cmd.name)

    def clear(self) -> None:
        """Drop all subscribers, handlers and pending commands."""
        with self._registry_lock:
            self._subscribers = ()
            self._cmd_handlers = ()
        while True:
            try:
                self._pending.get_nowait()
            except queue.Empty:
                break
