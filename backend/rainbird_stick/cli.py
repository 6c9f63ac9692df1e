"""Operator command line for a Rain Bird stick.

Usage:
    rainbird-stick poll                     Poll the controller and print a snapshot
    rainbird-stick model                    Print model and protocol version
    rainbird-stick firmware                 Print controller firmware version
    rainbird-stick zip                      Print the configured zip code
    rainbird-stick run-program N            Start program N (0 = program A)
    rainbird-stick run-station ZONE MINS    Run one zone for MINS minutes
    rainbird-stick stop                     Stop all irrigation

Connection options fall back to RAINBIRD_* environment variables and .env.
"""

import argparse
import logging
import sys
from typing import Optional

from .config import StickSettings
from .protocol.exceptions import StickException
from .protocol.stick_types import CommandResult, ControllerSnapshot
from .services.session import StickSession

logger = logging.getLogger(__name__)


def build_settings(args: argparse.Namespace) -> StickSettings:
    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.password is not None:
        overrides["password"] = args.password
    return StickSettings(**overrides)


def format_snapshot(snapshot: ControllerSnapshot) -> str:
    state = snapshot.combined_state
    lines = [
        f"Network up:        {snapshot.network.network_up}",
        f"Internet up:       {snapshot.network.internet_up}",
        f"WiFi RSSI:         {snapshot.wifi.rssi} dBm",
        f"Controller time:   {state.controller_time.isoformat(sep=' ')}",
        f"Rain delay:        {state.delay_setting} days",
        f"Seasonal adjust:   {state.seasonal_adjust}%",
        f"Zones:             {', '.join(str(z) for z in sorted(snapshot.zones.available_zones)) or 'none'}",
        f"Active zone:       {snapshot.zones.active_zone or 'none'}",
        f"Remaining runtime: {snapshot.zones.remaining_runtime} s",
        f"Programs:          {snapshot.programs.program_count}",
    ]
    lines += [f"  {summary}" for summary in snapshot.programs.summaries]
    return "\n".join(lines)


def _report(result: CommandResult, what: str) -> int:
    if result.success:
        print(f"{what}: OK")
        return 0
    detail = f" (error code {result.error_code})" if result.error_code is not None else ""
    print(f"{what}: FAILED{detail}", file=sys.stderr)
    return 1


def cmd_poll(session: StickSession, _args: argparse.Namespace) -> int:
    print(format_snapshot(session.poll()))
    return 0


def cmd_model(session: StickSession, _args: argparse.Namespace) -> int:
    model = session.get_model_and_version()
    print(f"{model.model_name} ({model.model_code}, id 0x{model.model_id:04X}), "
          f"protocol {model.protocol_major}.{model.protocol_minor}")
    return 0


def cmd_firmware(session: StickSession, _args: argparse.Namespace) -> int:
    print(session.get_controller_firmware_version().version)
    return 0


def cmd_zip(session: StickSession, _args: argparse.Namespace) -> int:
    info = session.get_zip_code()
    print(f"{info.code or '-'} {info.country or '-'}")
    return 0


def cmd_run_program(session: StickSession, args: argparse.Namespace) -> int:
    return _report(session.run_program(args.program), f"Run program {args.program}")


def cmd_run_station(session: StickSession, args: argparse.Namespace) -> int:
    return _report(
        session.run_station(args.zone, args.minutes),
        f"Run zone {args.zone} for {args.minutes} min",
    )


def cmd_stop(session: StickSession, _args: argparse.Namespace) -> int:
    return _report(session.stop_all_zones(), "Stop irrigation")


COMMANDS = {
    "poll": cmd_poll,
    "model": cmd_model,
    "firmware": cmd_firmware,
    "zip": cmd_zip,
    "run-program": cmd_run_program,
    "run-station": cmd_run_station,
    "stop": cmd_stop,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rainbird-stick",
        description="Query and control a Rain Bird controller through its WiFi stick",
    )
    parser.add_argument("--host", help="Stick host, host:port or http:// URL")
    parser.add_argument("--port", type=int, help="HTTP port (default 80)")
    parser.add_argument("--password", help="Stick password; omit for plaintext mode")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("poll", help="Poll the controller and print a snapshot")
    sub.add_parser("model", help="Print model and protocol version")
    sub.add_parser("firmware", help="Print controller firmware version")
    sub.add_parser("zip", help="Print the configured zip code")
    run_program = sub.add_parser("run-program", help="Start a stored program")
    run_program.add_argument("program", type=int, help="Program index, 0 = program A")
    run_station = sub.add_parser("run-station", help="Run one zone")
    run_station.add_argument("zone", type=int, help="Zone number, starting at 1")
    run_station.add_argument("minutes", type=int, help="Run time in minutes (1-255)")
    sub.add_parser("stop", help="Stop all irrigation")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s:     %(name)s - %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        with StickSession(build_settings(args)) as session:
            return COMMANDS[args.command](session, args)
    except StickException as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
