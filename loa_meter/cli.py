from __future__ import annotations

import argparse
import logging
import os

from rich.console import Console
from rich.live import Live

from loa_meter import __version__
from loa_meter.cli_ui import format_encounter_table
from loa_meter.domain import load_reference_data
from loa_meter.logging_config import configure_logging
from loa_meter.meter.encounter_parser import LIVE_SETTLE_SECONDS
from loa_meter.notify import QueueEventSink
from loa_meter.pipeline import live_encounter, replay_encounters
from loa_meter.protocol.log_lines import LogParseError

ENV_SETTLE_SECONDS = "LOA_METER_SETTLE_SECONDS"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="loa-meter")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--data-dir")
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command")

    replay = subparsers.add_parser("replay")
    live = subparsers.add_parser("live")

    for sub in (replay, live):
        sub.add_argument("log")
        sub.add_argument("--top", type=int, default=10)

    live.add_argument("--from-start", action="store_true")
    live.add_argument("--poll", type=float, default=0.25)
    live.add_argument("--snapshot-interval", type=float, default=1.0)
    live.add_argument("--settle-seconds", type=float)

    return parser


def main(argv: list[str] | None = None, *, console: Console | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log_level = "DEBUG" if args.debug else args.log_level
    configure_logging(log_level)
    console = console or Console()

    if not args.command:
        parser.print_help()
        return 0

    reference = load_reference_data(args.data_dir, logger=logging.getLogger(__name__))

    if args.command == "replay":
        try:
            encounters = replay_encounters(args.log, reference)
        except LogParseError as exc:
            logging.getLogger(__name__).error("%s", exc)
            return 1
        if not encounters:
            console.print("No encounters found.")
            return 0
        for index, encounter in enumerate(encounters, start=1):
            table = format_encounter_table(encounter, top_n=args.top)
            table.title = f"[{index}] {table.title}"
            console.print(table)
        return 0

    if args.command == "live":
        sink = QueueEventSink()
        try:
            snapshots = live_encounter(
                args.log,
                reference,
                sink=sink,
                from_start=args.from_start,
                poll_interval=args.poll,
                settle_seconds=_resolve_settle_seconds(args),
                snapshot_interval=args.snapshot_interval,
            )
            with Live(console=console, auto_refresh=False) as live_view:
                for snapshot in snapshots:
                    for event, payload in sink.drain():
                        value = getattr(payload, "value", payload)
                        console.print(f"{event} {value}".rstrip())
                    live_view.update(
                        format_encounter_table(snapshot.encounter, top_n=args.top),
                        refresh=True,
                    )
        except FileNotFoundError:
            logging.getLogger(__name__).error("Log file not found: %s", args.log)
            return 1
        except KeyboardInterrupt:
            return 0
        return 0

    return 0


def _resolve_settle_seconds(args: argparse.Namespace) -> float:
    if args.settle_seconds is not None:
        return max(args.settle_seconds, 0.0)
    env_val = os.environ.get(ENV_SETTLE_SECONDS)
    if env_val:
        try:
            return max(float(env_val), 0.0)
        except ValueError:
            logging.getLogger(__name__).warning(
                "Ignoring invalid %s: %s", ENV_SETTLE_SECONDS, env_val
            )
    return LIVE_SETTLE_SECONDS


if __name__ == "__main__":
    raise SystemExit(main())
