# src/services/health_checker.py

"""Summarise tracked-item health from stored counters and snapshots."""

import logging
from dataclasses import dataclass
from datetime import datetime

from src.config.settings import Settings
from src.models.tracked_item import TrackedItem
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.health")


@dataclass
class HealthResult:
    """Health of a single tracked item."""

    item_id: int
    name: str
    status: str  # "ok", "degraded", "failing", "inactive", "new"
    consecutive_failures: int
    last_success_at: datetime | None
    last_value: str
    message: str


def classify_item(
    item: TrackedItem,
    last_value: str = "",
    threshold: int | None = None,
) -> HealthResult:
    """Classify one item's health from its counters."""
    limit = threshold if threshold is not None else Settings.FAILURE_THRESHOLD
    failures = item.consecutive_failures

    if not item.is_active:
        status, message = "inactive", "Tracking paused"
    elif failures >= limit:
        status, message = "failing", f"{failures} consecutive failures"
    elif failures > 0:
        status, message = "degraded", f"{failures} recent failure(s)"
    elif item.last_success_at is None:
        status, message = "new", "No successful capture yet"
    else:
        status, message = "ok", ""

    return HealthResult(
        item_id=item.id,
        name=item.name,
        status=status,
        consecutive_failures=failures,
        last_success_at=item.last_success_at,
        last_value=last_value,
        message=message,
    )


class HealthChecker:
    """Builds a health report over every tracked item."""

    def __init__(self, db: TrackerDB) -> None:
        self.db = db

    def check_all(self) -> list[HealthResult]:
        """Classify every tracked item."""
        results: list[HealthResult] = []
        for item in self.db.list_tracked_items():
            last_ok = self.db.latest_ok_snapshot(item.id)
            result = classify_item(
                item, last_ok.value_raw if last_ok else "",
            )
            logger.info(
                "Health check item %d: %s %s",
                result.item_id,
                result.status,
                result.message,
            )
            results.append(result)
        return results
