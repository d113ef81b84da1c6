# src/cli/build_machine.py

import argparse
import contextlib
import json
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from agent.logging_config import configure_logging
from bridge import BridgeError, IpcBridge, create_bridge_for_env
from construction import BlueprintRunner, ConstructionSession
from construction.validate import simulate, validate_blueprint
from env.loader import load_environment
from machines import get_machine, list_machines
from monitoring.bus import EventBus
from monitoring.controller import RunController
from monitoring.dashboard_tui import BuildDashboard
from monitoring.events import ControlCommand
from monitoring.logger import JsonFileLogger

log = logging.getLogger(__name__)


def _print(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def install_interrupt_handler(bus: EventBus, session: ConstructionSession):
    """
    Route the first Ctrl-C to the session's interrupt and return the previous
    handler. A second Ctrl-C falls through to that handler.
    """
    previous = signal.getsignal(signal.SIGINT)

    def _on_sigint(signum, frame) -> None:
        # Runs between bytecodes of the main thread, possibly mid-publish:
        # no locks, no logging. The bus delivers the queued command later.
        session.interrupt.set()
        bus.post_command(ControlCommand.cancel_run("SIGINT"))
        signal.signal(signal.SIGINT, previous)

    signal.signal(signal.SIGINT, _on_sigint)
    return previous


def cmd_list(args: argparse.Namespace) -> int:
    _print([get_machine(name).describe() for name in list_machines()])
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    names = args.machines or list_machines()
    reports = [validate_blueprint(get_machine(name)) for name in names]
    _print([r.to_dict() for r in reports])
    return 0 if all(r.ok for r in reports) else 1


def cmd_simulate(args: argparse.Namespace) -> int:
    result = simulate(get_machine(args.machine))
    output = {
        "summary": result.report.summary(),
        "failures": [r.to_dict() for r in result.report.failures()],
        "commands": result.commands,
        "entities": [{"item": item, "cell": cell} for item, cell in result.entities],
    }
    if args.show_blocks:
        output["blocks"] = [
            {"cell": cell, "block": name} for cell, name in result.blocks.items()
        ]
    _print(output)
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    env = load_environment(config_root=args.config_root, profile=args.env)
    blueprint = get_machine(args.machine)

    bus = EventBus()
    with contextlib.ExitStack() as stack:
        if env.event_log:
            event_logger = JsonFileLogger(Path(env.event_log), bus)
            stack.callback(event_logger.close)

        bridge = create_bridge_for_env(env)
        if isinstance(bridge, IpcBridge):
            stack.enter_context(bridge)

        session = ConstructionSession(bridge, config=env.construction, bus=bus)
        controller = RunController(bus, session)
        stack.callback(controller.close)

        previous = install_interrupt_handler(bus, session)
        stack.callback(signal.signal, signal.SIGINT, previous)

        if args.dashboard:
            dashboard = BuildDashboard(bus)
            stop = threading.Event()
            thread = threading.Thread(target=dashboard.run, args=(stop,), daemon=True)
            thread.start()
            stack.callback(dashboard.close)
            stack.callback(thread.join, 2.0)
            stack.callback(stop.set)

        report = BlueprintRunner(session).run(blueprint)
        bus.dispatch_pending()
        if session.interrupt.is_set():
            log.warning("Run %s was cancelled", session.run_id)

    _print(
        {
            "env": env.name,
            "summary": report.summary(),
            "failures": [r.to_dict() for r in report.failures()],
        }
    )
    return 0 if report.failed == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build, validate and simulate relative-placement machines."
    )
    parser.add_argument("--log-level", default="INFO", help="Root log level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List bundled machines")
    p_list.set_defaults(func=cmd_list)

    p_validate = sub.add_parser("validate", help="Check blueprints without running them")
    p_validate.add_argument("machines", nargs="*", help="Machine names (default: all)")
    p_validate.set_defaults(func=cmd_validate)

    p_sim = sub.add_parser("simulate", help="Run a blueprint against an in-memory world")
    p_sim.add_argument("machine")
    p_sim.add_argument("--show-blocks", action="store_true", help="Include every edited cell")
    p_sim.set_defaults(func=cmd_simulate)

    p_build = sub.add_parser("build", help="Build a machine through the configured bridge")
    p_build.add_argument("machine")
    p_build.add_argument("--env", default=None, help="Env profile name (from env.yaml)")
    p_build.add_argument(
        "--config-root",
        type=Path,
        default=None,
        help="Directory holding env.yaml and construction.yaml",
    )
    p_build.add_argument("--dashboard", action="store_true", help="Show a live terminal dashboard")
    p_build.set_defaults(func=cmd_build)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except KeyError as exc:
        # Unknown machine or profile.
        print(f"error: {exc.args[0] if exc.args else exc}", file=sys.stderr)
        return 2
    except BridgeError as exc:
        print(f"error: bridge {exc.code}: {exc.details}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    sys.exit(main())
