# src/models/snapshot.py

"""Immutable extraction result for a tracked item."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

STATUS_OK = "ok"
STATUS_MISSING = "missing"
STATUS_ERROR = "error"
SNAPSHOT_STATUSES: tuple[str, ...] = (
    STATUS_OK,
    STATUS_MISSING,
    STATUS_ERROR,
)


@dataclass(frozen=True)
class Snapshot:
    """A single reading of a tracked item at a point in time."""

    id: int
    tracked_item_id: int
    value_raw: str
    value_numeric: Decimal | None
    status: str
    taken_at: datetime

    def __post_init__(self) -> None:
        if self.status not in SNAPSHOT_STATUSES:
            raise ValueError(f"unknown snapshot status {self.status!r}")
        if self.value_numeric is not None and self.status != STATUS_OK:
            raise ValueError(
                "only ok snapshots may carry a numeric value"
            )

    @property
    def is_ok(self) -> bool:
        """True when the value was captured."""
        return self.status == STATUS_OK
