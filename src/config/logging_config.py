# src/config/logging_config.py

"""Per-run log files for value_tracker.

Every invocation writes ``logs/run_YYYYmmdd_HHMMSS.log`` at DEBUG, so a
whole extraction run (both tiers, triggers, repairs, store writes) can
be replayed afterwards.  The console only shows ``Settings.LOG_LEVEL``
and above; per-item failures log at WARNING/ERROR and therefore surface
there too.  Only the newest ``Settings.LOG_RETENTION`` run files are
kept.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

ROOT_LOGGER_NAME = "value_tracker"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def prune_run_logs(logs_dir: Path, keep: int) -> list[Path]:
    """Delete all but the newest *keep* ``run_*.log`` files.

    Returns the removed paths.  Names sort chronologically, so no stat
    calls are needed.
    """
    runs = sorted(logs_dir.glob("run_*.log"))
    stale = runs[:-keep] if keep > 0 else runs
    removed: list[Path] = []
    for path in stale:
        try:
            path.unlink()
        except OSError:
            continue
        removed.append(path)
    return removed


def _console_level() -> int:
    level = logging.getLevelName(Settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Attach the run-file and console handlers to ``value_tracker``.

    Safe to call more than once; later calls return the path a fresh
    run would use without adding handlers.
    """
    target_dir = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    log_file = (
        target_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"
    )

    tracker_logger = logging.getLogger(ROOT_LOGGER_NAME)
    tracker_logger.setLevel(logging.DEBUG)
    if tracker_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )
    tracker_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_console_level())
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )
    tracker_logger.addHandler(console_handler)

    removed = prune_run_logs(target_dir, max(Settings.LOG_RETENTION, 1))
    tracker_logger.info(
        "Logging to %s (%d old run log(s) pruned)", log_file, len(removed),
    )
    return log_file
