# main.py

"""Entry point for the value_tracker worker and maintenance commands."""

import argparse
import logging
import sys
from pathlib import Path

from src.config.logging_config import setup_logging

logger = logging.getLogger("value_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="value_tracker",
        description="Track single values on web pages over time.",
    )
    parser.add_argument(
        "--db",
        default=None,
        type=Path,
        dest="db_path",
        help="SQLite database path (default: data/tracker.db).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Extract every active item once.")
    run.add_argument(
        "--item",
        type=int,
        action="append",
        dest="item_ids",
        help="Only process this item id (repeatable).",
    )

    imp = sub.add_parser(
        "import-items", help="Load tracked items from a JSON file.",
    )
    imp.add_argument("file", type=Path)

    fail = sub.add_parser(
        "report-failure", help="Record a failed capture for an item.",
    )
    fail.add_argument("item_id", type=int)
    fail.add_argument(
        "--repair",
        action="store_true",
        default=False,
        help="Run a selector repair if the failure threshold is crossed.",
    )

    capture = sub.add_parser(
        "record-capture", help="Record a value captured outside a run.",
    )
    capture.add_argument("item_id", type=int)
    capture.add_argument("value_raw", metavar="TEXT")

    repair = sub.add_parser("repair", help="Request a selector repair.")
    repair.add_argument("item_id", type=int)

    history = sub.add_parser("history", help="Show an item's snapshots.")
    history.add_argument("item_id", type=int)
    history.add_argument("-n", "--limit", type=int, default=20)

    events = sub.add_parser("events", help="Show a trigger's firings.")
    events.add_argument("trigger_id", type=int)
    events.add_argument("-n", "--limit", type=int, default=50)

    sub.add_parser("health", help="Show tracked item health.")
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Route parsed arguments to the matching runner command."""
    from src.cli import runner

    if args.command == "run":
        return runner.run_extraction(args.item_ids, db_path=args.db_path)
    if args.command == "import-items":
        return runner.run_import_items(args.file, db_path=args.db_path)
    if args.command == "report-failure":
        return runner.run_report_failure(
            args.item_id, repair=args.repair, db_path=args.db_path,
        )
    if args.command == "record-capture":
        return runner.run_record_capture(
            args.item_id, args.value_raw, db_path=args.db_path,
        )
    if args.command == "repair":
        return runner.run_repair(args.item_id, db_path=args.db_path)
    if args.command == "history":
        return runner.run_history(
            args.item_id, limit=args.limit, db_path=args.db_path,
        )
    if args.command == "events":
        return runner.run_trigger_events(
            args.trigger_id, limit=args.limit, db_path=args.db_path,
        )
    return runner.run_health_check(db_path=args.db_path)


def main() -> None:
    """Parse arguments, set up logging and run one command."""
    log_file = setup_logging()
    logger.info("value_tracker starting, log file: %s", log_file)

    args = _build_parser().parse_args()
    try:
        exit_code = _dispatch(args)
    except Exception:
        logger.critical("Fatal error in %s", args.command, exc_info=True)
        raise
    finally:
        logger.info("value_tracker %s finished", args.command)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
