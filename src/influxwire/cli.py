"""Command-line entry point: send line protocol text to InfluxDB."""

import sys
from typing import Iterable, List, Optional, TextIO

from influxwire.sync.writer import ResilientWriter
from influxwire.utils.config import load_config
from influxwire.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


def read_lines(stream: TextIO) -> List[str]:
    """Return the non-blank lines of ``stream`` without line endings."""
    return [line.rstrip("\r\n") for line in stream if line.strip()]


def build_body(lines: Iterable[str]) -> bytes:
    """Join lines into a newline-terminated request body."""
    return "".join(f"{line}\n" for line in lines).encode("utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the influxwire command."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Send line protocol points to InfluxDB over HTTP",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="-",
        help="File of line protocol points, one per line ('-' for stdin)",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to config file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Always render logs as JSON",
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(
        args.log_level or config.app.log_level,
        json_output=True if args.json_logs else None,
    )

    if args.file == "-":
        lines = read_lines(sys.stdin)
    else:
        with open(args.file, encoding="utf-8") as f:
            lines = read_lines(f)

    if not lines:
        log.info("nothing_to_send")
        return 0

    with ResilientWriter(config.influxdb, config.policy) as writer:
        result = writer.write(build_body(lines))

    log.info(
        "send_finished",
        outcome=result.outcome.value,
        lines=len(lines),
        status_code=result.status_code,
        error=result.error,
    )
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
