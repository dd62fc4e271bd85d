# src/storage/item_loader.py

"""Seed the store with tracked items and triggers from a JSON file.

Expected layout (a list of items)::

    [
      {
        "name": "Espresso machine",
        "url": "https://shop.example/p/123",
        "selector": ".price",
        "type": "price",
        "sampleText": "$199.00",
        "fingerprint": {"path": [{"tag": "span", "classes": ["price"],
                                  "nthOfType": 1}]},
        "triggers": [{"comparison": "lt", "threshold": "150"}]
      }
    ]

Entries that fail validation are skipped and logged; the rest load.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.errors import InvalidFingerprintError
from src.models.fingerprint import Fingerprint
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.loader")


def _validate_entry(entry: Any, index: int) -> dict[str, Any]:
    """Return normalised fields or raise ``ValueError``."""
    if not isinstance(entry, dict):
        raise ValueError(f"entry {index} is not an object")
    for key in ("url", "selector"):
        value = entry.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"entry {index} is missing {key!r}")

    value_type = entry.get("type", "text")
    if value_type not in Settings.VALUE_TYPES:
        raise ValueError(f"entry {index} has unknown type {value_type!r}")

    is_active = entry.get("isActive", True)
    if not isinstance(is_active, bool):
        raise ValueError(f"entry {index} has a non-boolean isActive")

    raw_fp = entry.get("fingerprint")
    fingerprint = Fingerprint.from_json(raw_fp) if raw_fp else None

    triggers: list[tuple[str, Decimal]] = []
    for t in entry.get("triggers") or []:
        comparison = t.get("comparison") if isinstance(t, dict) else None
        if comparison not in Settings.COMPARISONS:
            raise ValueError(
                f"entry {index} has unknown comparison {comparison!r}"
            )
        try:
            threshold = Decimal(str(t.get("threshold")))
        except InvalidOperation as exc:
            raise ValueError(
                f"entry {index} has a non-numeric threshold"
            ) from exc
        if not threshold.is_finite():
            raise ValueError(f"entry {index} has a non-finite threshold")
        triggers.append((comparison, threshold))

    return {
        "name": str(entry.get("name") or entry["url"]),
        "url": entry["url"].strip(),
        "selector": entry["selector"].strip(),
        "value_type": value_type,
        "sample_text": entry.get("sampleText"),
        "fingerprint": fingerprint,
        "is_active": is_active,
        "triggers": triggers,
    }


def load_items_file(db: TrackerDB, filepath: Path) -> int:
    """Import items (and their triggers) from *filepath*.

    Returns the number of items created.
    """
    try:
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s: %s", filepath, exc)
        return 0

    if not isinstance(data, list):
        logger.warning("%s does not contain a list of items", filepath)
        return 0

    created = 0
    for index, entry in enumerate(data):
        try:
            fields = _validate_entry(entry, index)
        except (ValueError, InvalidFingerprintError) as exc:
            logger.warning("Skipping item: %s", exc)
            continue

        triggers = fields.pop("triggers")
        item = db.add_tracked_item(**fields)
        for comparison, threshold in triggers:
            db.add_trigger(item.id, comparison, threshold)
        created += 1

    logger.info("Loaded %d of %d items from %s", created, len(data), filepath)
    return created
