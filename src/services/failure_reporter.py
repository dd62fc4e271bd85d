# src/services/failure_reporter.py

"""Failure-reporting entry point: the only writer of failure counters."""

import logging
from dataclasses import dataclass
from datetime import datetime

from src.config.settings import Settings
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.health")


@dataclass
class FailureReport:
    """Outcome of one reported failure."""

    item_id: int
    consecutive_failures: int
    should_repair: bool


class FailureReporter:
    """Count consecutive failures and flag items due for repair."""

    def __init__(
        self,
        db: TrackerDB,
        threshold: int | None = None,
    ) -> None:
        self.db = db
        self.threshold = (
            threshold if threshold is not None
            else Settings.FAILURE_THRESHOLD
        )

    def report_failure(
        self, item_id: int, at: datetime | None = None,
    ) -> FailureReport:
        """Record a failure for *item_id*.

        Raises:
            ItemNotFoundError: if the item does not exist.
        """
        item = self.db.record_failure(item_id, at=at)
        should_repair = (
            item.consecutive_failures >= self.threshold and item.is_active
        )
        log = logger.warning if should_repair else logger.info
        log(
            "Item %d failure recorded (%d consecutive)%s",
            item_id,
            item.consecutive_failures,
            ", repair due" if should_repair else "",
        )
        return FailureReport(
            item_id=item_id,
            consecutive_failures=item.consecutive_failures,
            should_repair=should_repair,
        )
