# src/services/trigger_evaluator.py

"""Fire threshold triggers off a freshly captured snapshot."""

import logging
import operator
from collections.abc import Callable
from decimal import Decimal

from src.models.snapshot import Snapshot
from src.models.trigger import TriggerEvent
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.triggers")

COMPARATORS: dict[str, Callable[[Decimal, Decimal], bool]] = {
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
    "eq": operator.eq,
    "neq": operator.ne,
}


def compare(value: Decimal, comparison: str, threshold: Decimal) -> bool:
    """Apply a named comparison; raises ``KeyError`` on unknown names."""
    return COMPARATORS[comparison](value, threshold)


class TriggerEvaluator:
    """At-most-once evaluation of an item's active triggers."""

    def __init__(self, db: TrackerDB) -> None:
        self.db = db

    def evaluate(self, snapshot: Snapshot) -> list[TriggerEvent]:
        """Evaluate triggers against *snapshot* and return new events.

        The snapshot passed in is the one just written; it is never
        re-read from the store, so a concurrent insert cannot change
        which reading a trigger fires on.
        """
        value = snapshot.value_numeric
        if not snapshot.is_ok or value is None:
            return []

        events: list[TriggerEvent] = []
        for trigger in self.db.active_triggers(snapshot.tracked_item_id):
            if trigger.has_fired:
                continue
            try:
                matched = compare(value, trigger.comparison, trigger.threshold)
            except KeyError:
                logger.warning(
                    "Trigger %d has unknown comparison %r, skipping",
                    trigger.id,
                    trigger.comparison,
                )
                continue
            if not matched:
                continue

            event = self.db.fire_trigger(trigger.id, snapshot.id)
            if event is None:
                continue
            logger.info(
                "Trigger %d fired for item %d "
                "(value=%s, comparison=%s, threshold=%s)",
                trigger.id,
                snapshot.tracked_item_id,
                value,
                trigger.comparison,
                trigger.threshold,
            )
            events.append(event)
        return events
