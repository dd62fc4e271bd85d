# src/models/tracked_item.py

"""Tracked item model: one monitored value on one page."""

from dataclasses import dataclass
from datetime import datetime

from src.models.fingerprint import Fingerprint


@dataclass
class TrackedItem:
    """A monitored (URL, selector) pair with its health state."""

    id: int
    name: str
    url: str
    selector: str
    value_type: str = "text"
    sample_text: str | None = None
    fingerprint: Fingerprint | None = None
    consecutive_failures: int = 0
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
