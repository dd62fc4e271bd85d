# src/models/trigger.py

"""Threshold trigger models."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Trigger:
    """A threshold rule over an item's numeric readings.

    Once ``last_fired_at`` is set the trigger is dormant; the extraction
    core never re-arms it.
    """

    id: int
    tracked_item_id: int
    comparison: str
    threshold: Decimal
    active: bool = True
    last_fired_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def has_fired(self) -> bool:
        """True once the trigger has produced an event."""
        return self.last_fired_at is not None


@dataclass(frozen=True)
class TriggerEvent:
    """Audit record linking one trigger firing to its snapshot."""

    id: int
    trigger_id: int
    snapshot_id: int
    created_at: datetime
