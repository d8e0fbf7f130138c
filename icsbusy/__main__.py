"""Command-line entry for icsbusy.

Parses a local calendar feed file and prints the normalized events (or the
busy intervals) as JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from typing import NoReturn, Optional

from . import _init_logging
from .calendar.ics_parser import IcsParser
from .config_loader import apply_env_overrides, load_config
from .domain.busy_projector import extract_busy_times
from .ics_logging import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_READ_ERROR = 1
EXIT_USAGE = 2


def _parse_instant(value: str) -> datetime:
    """argparse type for ISO 8601 instants; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid ISO 8601 datetime: {value!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the icsbusy CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="icsbusy",
        description="Parse an iCalendar feed into normalized UTC events or busy intervals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m icsbusy calendar.ics
  python -m icsbusy calendar.ics --start 2024-01-01T00:00:00Z --end 2024-02-01T00:00:00Z --busy
        """,
    )

    parser.add_argument("feed", metavar="FEED.ics", help="Path to the calendar feed file")
    parser.add_argument("--start", type=_parse_instant, metavar="ISO", help="Window start")
    parser.add_argument("--end", type=_parse_instant, metavar="ISO", help="Window end")
    parser.add_argument(
        "--busy",
        action="store_true",
        help="Print busy intervals instead of events (requires --start and --end)",
    )
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON config file (default: ./icsbusy.yaml)")
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (DEBUG, INFO, WARNING, ERROR); overrides config",
    )

    return parser


def run(argv: Optional[list[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = _create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code or 0)

    if args.busy and (args.start is None or args.end is None):
        parser.print_usage(sys.stderr)
        print("icsbusy: error: --busy requires --start and --end", file=sys.stderr)
        return EXIT_USAGE
    if args.start and args.end and args.end < args.start:
        print("icsbusy: error: --end must not be before --start", file=sys.stderr)
        return EXIT_USAGE

    try:
        cfg = apply_env_overrides(load_config(args.config))
    except (OSError, ValueError) as e:
        print(f"icsbusy: error: cannot load config: {e}", file=sys.stderr)
        return EXIT_USAGE

    level_name = args.log_level or cfg.log_level
    _init_logging(level_name)
    configure_logging(debug_mode=level_name.upper() == "DEBUG", level_name=level_name)

    try:
        with open(args.feed, encoding="utf-8") as handle:
            feed_text = handle.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read feed %s: %s", args.feed, e)
        return EXIT_READ_ERROR

    result = IcsParser(cfg).parse(feed_text, args.start, args.end)

    if args.busy:
        busy = extract_busy_times(result.events, args.start, args.end)
        payload: dict = {
            "busy": [interval.model_dump(mode="json") for interval in busy],
            "errors": result.errors,
        }
    else:
        payload = result.model_dump(mode="json")

    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return EXIT_OK


def main() -> NoReturn:
    """Run the icsbusy CLI and exit with its status code."""
    sys.exit(run())


if __name__ == "__main__":
    main()
