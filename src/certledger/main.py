from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from certledger.app import export_ledger_settlements, export_ledger_tables
from certledger.config import ConfigurationError, configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Must be non-negative: {value}")
    return parsed


def _positive_int(value: str) -> int:
    parsed = _non_negative_int(value)
    if parsed == 0:
        raise argparse.ArgumentTypeError(f"Must be positive: {value}")
    return parsed


def _add_ledger_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the generated CSV tables (defaults to config)",
    )
    parser.add_argument(
        "--start-block",
        type=_non_negative_int,
        default=None,
        help="First block to read events from (defaults to config)",
    )
    parser.add_argument(
        "--block-span",
        type=_positive_int,
        default=None,
        help="Number of blocks requested per eth_getLogs call (defaults to config)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rebuild certificate tables from Energy Web Chain events"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export = subparsers.add_parser(
        "export", help="Write batches.csv, certificates.csv and claims.csv"
    )
    _add_ledger_arguments(export)

    settlements = subparsers.add_parser(
        "settlements", help="Reconcile agreement events and write agreements.csv"
    )
    _add_ledger_arguments(settlements)

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        if parsed_args.command == "export":
            result = export_ledger_tables(
                output_dir=parsed_args.output_dir,
                start_block=parsed_args.start_block,
                block_span=parsed_args.block_span,
            )
            failures = result.outcome.failures
        elif parsed_args.command == "settlements":
            settlement_result = export_ledger_settlements(
                output_dir=parsed_args.output_dir,
                start_block=parsed_args.start_block,
                block_span=parsed_args.block_span,
            )
            failures = settlement_result.outcome.failures
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error while parsing Energy Web Chain data")
        sys.exit(1)

    if failures:
        log.error("Some tables could not be written: %s", ", ".join(sorted(failures)))
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
