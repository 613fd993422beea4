import argparse
import logging
import os
import sys
from typing import List, Optional

from csv_io import write_accounts
from ledger_engine import LedgerEngine

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "PAYMENTS_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def configure_logging(level: Optional[str] = None) -> None:
    """Send logs to stderr so stdout stays clean for the CSV report."""
    level = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-ledger",
        description="Apply a CSV of transactions and print closing client balances.",
    )
    parser.add_argument("input", nargs="?", help="input transactions CSV")
    parser.add_argument("output", nargs="?", help="output accounts CSV (defaults to stdout)")
    parser.add_argument("--input", dest="input_option", metavar="FILE", help="input transactions CSV")
    parser.add_argument("--output", dest="output_option", metavar="FILE", help="output accounts CSV")
    parser.add_argument("--log-level", help=f"log level (default: ${LOG_LEVEL_ENV} or {DEFAULT_LOG_LEVEL})")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    input_path = args.input_option or args.input
    output_path = args.output_option or args.output
    if input_path is None:
        parser.error("an input CSV is required")

    engine = LedgerEngine()
    try:
        accounts = engine.process_file(input_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Cannot read {input_path}: {e}")
        return 1

    if output_path is None:
        write_accounts(accounts.values(), sys.stdout)
        return 0

    try:
        with open(output_path, "w", newline="") as f:
            write_accounts(accounts.values(), f)
    except OSError as e:
        logger.error(f"Cannot write {output_path}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
