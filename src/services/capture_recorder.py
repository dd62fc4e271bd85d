# src/services/capture_recorder.py

"""Live capture entry point: the success side of failure reporting.

A client that read the value itself (a browser extension, a manual
check) hands over the raw text.  It is stored as an ``ok`` snapshot,
the item's failure streak is cleared and its triggers are evaluated,
exactly as a successful batch run would.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from src.models.snapshot import STATUS_OK, Snapshot
from src.models.trigger import TriggerEvent
from src.parsers.numeric_parser import parse_numeric
from src.services.trigger_evaluator import TriggerEvaluator
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.capture")


@dataclass
class CaptureResult:
    """The stored snapshot and any triggers it fired."""

    snapshot: Snapshot
    fired: list[TriggerEvent] = field(default_factory=list)


class CaptureRecorder:
    """Record externally captured values for tracked items."""

    def __init__(
        self,
        db: TrackerDB,
        evaluator: TriggerEvaluator | None = None,
    ) -> None:
        self.db = db
        self.evaluator = evaluator or TriggerEvaluator(db)

    def record_capture(
        self,
        item_id: int,
        value_raw: str,
        at: datetime | None = None,
    ) -> CaptureResult:
        """Store *value_raw* as a successful reading of *item_id*.

        Raises:
            ValueError: if *value_raw* is blank.
            ItemNotFoundError: if the item does not exist.
        """
        text = value_raw.strip() if isinstance(value_raw, str) else ""
        if not text:
            raise ValueError("captured value must be a non-empty string")

        self.db.get_tracked_item(item_id)
        now = at or datetime.now()
        snapshot = self.db.record_snapshot(
            item_id, text, parse_numeric(text), STATUS_OK, now,
        )
        self.db.record_success(item_id, at=now)

        try:
            fired = self.evaluator.evaluate(snapshot)
        except Exception as exc:
            logger.error(
                "[item %d] Trigger evaluation failed: %s",
                item_id,
                exc,
                exc_info=True,
            )
            fired = []

        logger.info(
            "[item %d] Captured %r (numeric=%s, %d trigger(s) fired)",
            item_id,
            text,
            snapshot.value_numeric,
            len(fired),
        )
        return CaptureResult(snapshot=snapshot, fired=fired)
