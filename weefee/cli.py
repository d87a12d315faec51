from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from weefee import __version__
from weefee.app import DEFAULT_RESCAN_INTERVAL, App
from weefee.network import NetworkClient, Timings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero: {value}")
    return number


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    defaults = Timings()
    parser = argparse.ArgumentParser(prog="weefee", description="Manage WiFi connections through NetworkManager.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--rescan-interval",
        type=_positive_float,
        default=DEFAULT_RESCAN_INTERVAL,
        help="Seconds between background rescans.",
    )
    parser.add_argument(
        "--connect-timeout",
        type=_positive_float,
        default=defaults.activation_timeout,
        help="Seconds to wait for a connection to activate.",
    )
    parser.add_argument(
        "--poll-interval",
        type=_positive_float,
        default=defaults.poll_interval,
        help="Seconds between activation state checks.",
    )
    parser.add_argument(
        "--secrets-grace",
        type=_non_negative_float,
        default=defaults.missing_object_grace,
        help="Seconds a new connection may stay unreadable before the password is considered wrong (0 disables).",
    )
    parser.add_argument("--log-file", type=Path, help="Write diagnostics to this file.")
    parser.add_argument("--verbose", action="store_true", help="Log debug details.")
    return parser


def configure_logging(log_file: Path | None, verbose: bool) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    # The terminal belongs to the UI; records go to a file or nowhere.
    if log_file is None:
        root.addHandler(logging.NullHandler())
    else:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def timings_from_args(args: argparse.Namespace) -> Timings:
    return Timings(
        poll_interval=args.poll_interval,
        activation_timeout=args.connect_timeout,
        missing_object_grace=args.secrets_grace,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.verbose)
    if not sys.stdin.isatty() or not sys.stdout.isatty():
        print("weefee needs an interactive terminal.", file=sys.stderr)
        return 1

    timings = timings_from_args(args)
    app = App(lambda: NetworkClient.open(timings=timings), rescan_interval=args.rescan_interval)
    try:
        return app.run()
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
