# src/storage/tracker_db.py

"""SQLite-backed store for tracked items, snapshots and triggers."""

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, cast

from src.config.settings import Settings
from src.errors import InvalidFingerprintError, ItemNotFoundError
from src.models.fingerprint import Fingerprint
from src.models.repair_proposal import RepairProposal
from src.models.snapshot import STATUS_OK, Snapshot
from src.models.tracked_item import TrackedItem
from src.models.trigger import Trigger, TriggerEvent

logger = logging.getLogger("value_tracker.store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS tracked_items (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    name                 TEXT    NOT NULL,
    url                  TEXT    NOT NULL,
    selector             TEXT    NOT NULL,
    sample_text          TEXT,
    value_type           TEXT    NOT NULL DEFAULT 'text',
    fingerprint          TEXT,
    consecutive_failures INTEGER NOT NULL DEFAULT 0,
    last_success_at      TEXT,
    last_failure_at      TEXT,
    is_active            INTEGER NOT NULL DEFAULT 1,
    created_at           TEXT    NOT NULL,
    updated_at           TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS snapshots (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    tracked_item_id INTEGER NOT NULL
                    REFERENCES tracked_items(id) ON DELETE CASCADE,
    value_raw       TEXT    NOT NULL,
    value_numeric   TEXT,
    status          TEXT    NOT NULL DEFAULT 'ok',
    taken_at        TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_item_date
    ON snapshots(tracked_item_id, taken_at);

CREATE TABLE IF NOT EXISTS triggers (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    tracked_item_id INTEGER NOT NULL
                    REFERENCES tracked_items(id) ON DELETE CASCADE,
    comparison      TEXT    NOT NULL,
    threshold       TEXT    NOT NULL,
    active          INTEGER NOT NULL DEFAULT 1,
    last_fired_at   TEXT,
    created_at      TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS trigger_events (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    trigger_id  INTEGER NOT NULL
                REFERENCES triggers(id) ON DELETE CASCADE,
    snapshot_id INTEGER NOT NULL
                REFERENCES snapshots(id) ON DELETE CASCADE,
    created_at  TEXT    NOT NULL
);
"""

_ITEM_COLUMNS = (
    "id, name, url, selector, sample_text, value_type, fingerprint, "
    "consecutive_failures, last_success_at, last_failure_at, "
    "is_active, created_at, updated_at"
)
_SNAPSHOT_COLUMNS = (
    "id, tracked_item_id, value_raw, value_numeric, status, taken_at"
)
_TRIGGER_COLUMNS = (
    "id, tracked_item_id, comparison, threshold, active, "
    "last_fired_at, created_at"
)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _load_fingerprint(item_id: int, raw: str | None) -> Fingerprint | None:
    if not raw:
        return None
    try:
        return Fingerprint.from_json(raw)
    except InvalidFingerprintError as exc:
        # Item stays trackable by selector alone
        logger.warning(
            "Ignoring stored fingerprint of item %d: %s", item_id, exc,
        )
        return None


def _row_to_item(r: tuple[Any, ...]) -> TrackedItem:
    return TrackedItem(
        id=r[0],
        name=r[1],
        url=r[2],
        selector=r[3],
        sample_text=r[4],
        value_type=r[5],
        fingerprint=_load_fingerprint(r[0], r[6]),
        consecutive_failures=r[7],
        last_success_at=_parse_ts(r[8]),
        last_failure_at=_parse_ts(r[9]),
        is_active=bool(r[10]),
        created_at=_parse_ts(r[11]),
        updated_at=_parse_ts(r[12]),
    )


def _row_to_snapshot(r: tuple[Any, ...]) -> Snapshot:
    return Snapshot(
        id=r[0],
        tracked_item_id=r[1],
        value_raw=r[2],
        value_numeric=_dec(r[3]),
        status=r[4],
        taken_at=datetime.fromisoformat(r[5]),
    )


def _row_to_trigger(r: tuple[Any, ...]) -> Trigger:
    return Trigger(
        id=r[0],
        tracked_item_id=r[1],
        comparison=r[2],
        threshold=Decimal(r[3]),
        active=bool(r[4]),
        last_fired_at=_parse_ts(r[5]),
        created_at=_parse_ts(r[6]),
    )


class TrackerDB:
    """SQLite store honouring the snapshot/trigger invariants.

    Snapshots and trigger events are insert-only; there is no method
    that updates or deletes them.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("TrackerDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Tracked items ────────────────────────────────────

    def add_tracked_item(
        self,
        name: str,
        url: str,
        selector: str,
        value_type: str = "text",
        sample_text: str | None = None,
        fingerprint: Fingerprint | None = None,
        is_active: bool = True,
    ) -> TrackedItem:
        """Create a tracked item and return it."""
        if value_type not in Settings.VALUE_TYPES:
            raise ValueError(f"unknown value type {value_type!r}")
        now = _ts(datetime.now())
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO tracked_items "
                "(name, url, selector, sample_text, value_type, "
                " fingerprint, is_active, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    name,
                    url,
                    selector,
                    sample_text,
                    value_type,
                    fingerprint.to_json() if fingerprint else None,
                    int(is_active),
                    now,
                    now,
                ),
            )
        item_id = cast(int, cur.lastrowid)
        logger.info("Added tracked item %d (%s)", item_id, url)
        return self.get_tracked_item(item_id)

    def get_tracked_item(self, item_id: int) -> TrackedItem:
        """Fetch one item.

        Raises:
            ItemNotFoundError: if no such item exists.
        """
        row = self._conn.execute(
            f"SELECT {_ITEM_COLUMNS} FROM tracked_items WHERE id = ?",
            (item_id,),
        ).fetchone()
        if row is None:
            raise ItemNotFoundError(f"tracked item {item_id} not found")
        return _row_to_item(row)

    def list_tracked_items(
        self, active_only: bool = False,
    ) -> list[TrackedItem]:
        """Return items ordered by id."""
        sql = f"SELECT {_ITEM_COLUMNS} FROM tracked_items"
        if active_only:
            sql += " WHERE is_active = 1"
        rows = self._conn.execute(sql + " ORDER BY id").fetchall()
        return [_row_to_item(r) for r in rows]

    def record_success(
        self, item_id: int, at: datetime | None = None,
    ) -> None:
        """Reset the failure counter and stamp ``last_success_at``."""
        stamp = _ts(at or datetime.now())
        with self._conn:
            self._conn.execute(
                "UPDATE tracked_items SET consecutive_failures = 0, "
                "last_success_at = ?, updated_at = ? WHERE id = ?",
                (stamp, stamp, item_id),
            )

    def record_failure(
        self, item_id: int, at: datetime | None = None,
    ) -> TrackedItem:
        """Increment the failure counter and return the updated item."""
        stamp = _ts(at or datetime.now())
        with self._conn:
            cur = self._conn.execute(
                "UPDATE tracked_items "
                "SET consecutive_failures = consecutive_failures + 1, "
                "last_failure_at = ?, updated_at = ? WHERE id = ?",
                (stamp, stamp, item_id),
            )
        if cur.rowcount == 0:
            raise ItemNotFoundError(f"tracked item {item_id} not found")
        return self.get_tracked_item(item_id)

    def apply_repair(
        self,
        item_id: int,
        proposal: RepairProposal,
        value_numeric: Decimal | None,
        at: datetime | None = None,
    ) -> tuple[TrackedItem, Snapshot]:
        """Swap in a repaired selector and record its first reading.

        The item update and the snapshot insert share one transaction.
        """
        now = at or datetime.now()
        stamp = _ts(now)
        with self._conn:
            cur = self._conn.execute(
                "UPDATE tracked_items SET selector = ?, sample_text = ?, "
                "value_type = COALESCE(?, value_type), "
                "consecutive_failures = 0, last_success_at = ?, "
                "updated_at = ? WHERE id = ?",
                (
                    proposal.selector,
                    proposal.sample_text,
                    proposal.value_type,
                    stamp,
                    stamp,
                    item_id,
                ),
            )
            if cur.rowcount == 0:
                raise ItemNotFoundError(f"tracked item {item_id} not found")
            snapshot = self._insert_snapshot(
                item_id, proposal.sample_text, value_numeric, STATUS_OK, now,
            )
        return self.get_tracked_item(item_id), snapshot

    # ── Snapshots ────────────────────────────────────────

    def _insert_snapshot(
        self,
        item_id: int,
        value_raw: str,
        value_numeric: Decimal | None,
        status: str,
        taken_at: datetime,
    ) -> Snapshot:
        # Validate via the model before touching the table
        candidate = Snapshot(
            id=0,
            tracked_item_id=item_id,
            value_raw=value_raw,
            value_numeric=value_numeric,
            status=status,
            taken_at=taken_at,
        )
        cur = self._conn.execute(
            "INSERT INTO snapshots "
            "(tracked_item_id, value_raw, value_numeric, status, taken_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                item_id,
                value_raw,
                str(value_numeric) if value_numeric is not None else None,
                status,
                _ts(taken_at),
            ),
        )
        return replace(candidate, id=cast(int, cur.lastrowid))

    def record_snapshot(
        self,
        item_id: int,
        value_raw: str,
        value_numeric: Decimal | None,
        status: str,
        taken_at: datetime | None = None,
    ) -> Snapshot:
        """Append one snapshot and return it with its new id."""
        with self._conn:
            snapshot = self._insert_snapshot(
                item_id,
                value_raw,
                value_numeric,
                status,
                taken_at or datetime.now(),
            )
        logger.debug(
            "Recorded %s snapshot %d for item %d",
            status,
            snapshot.id,
            item_id,
        )
        return snapshot

    def get_snapshots(
        self, item_id: int, limit: int | None = None,
    ) -> list[Snapshot]:
        """Return an item's snapshots oldest first.

        With *limit*, only the most recent *limit* snapshots are
        returned (still oldest first).
        """
        sql = (
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots "
            "WHERE tracked_item_id = ? ORDER BY taken_at DESC, id DESC"
        )
        params: tuple[Any, ...] = (item_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (item_id, limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [_row_to_snapshot(r) for r in reversed(rows)]

    def get_snapshot(self, snapshot_id: int) -> Snapshot | None:
        """One snapshot by id, or ``None``."""
        row = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots WHERE id = ?",
            (snapshot_id,),
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    def latest_ok_snapshot(self, item_id: int) -> Snapshot | None:
        """Most recent ``ok`` snapshot for an item, if any."""
        row = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots "
            "WHERE tracked_item_id = ? AND status = ? "
            "ORDER BY taken_at DESC, id DESC LIMIT 1",
            (item_id, STATUS_OK),
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    # ── Triggers ─────────────────────────────────────────

    def add_trigger(
        self,
        item_id: int,
        comparison: str,
        threshold: Decimal,
        active: bool = True,
    ) -> Trigger:
        """Create a trigger; rejects unknown comparisons."""
        if comparison not in Settings.COMPARISONS:
            raise ValueError(f"unknown comparison {comparison!r}")
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO triggers "
                "(tracked_item_id, comparison, threshold, active, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    item_id,
                    comparison,
                    str(Decimal(threshold)),
                    int(active),
                    _ts(datetime.now()),
                ),
            )
        return self.get_trigger(cast(int, cur.lastrowid))

    def get_trigger(self, trigger_id: int) -> Trigger:
        """Fetch one trigger by id."""
        row = self._conn.execute(
            f"SELECT {_TRIGGER_COLUMNS} FROM triggers WHERE id = ?",
            (trigger_id,),
        ).fetchone()
        if row is None:
            raise LookupError(f"trigger {trigger_id} not found")
        return _row_to_trigger(row)

    def active_triggers(self, item_id: int) -> list[Trigger]:
        """All active triggers of an item, fired or not."""
        rows = self._conn.execute(
            f"SELECT {_TRIGGER_COLUMNS} FROM triggers "
            "WHERE tracked_item_id = ? AND active = 1 ORDER BY id",
            (item_id,),
        ).fetchall()
        return [_row_to_trigger(r) for r in rows]

    def fire_trigger(
        self,
        trigger_id: int,
        snapshot_id: int,
        at: datetime | None = None,
    ) -> TriggerEvent | None:
        """Latch a trigger and record its event in one transaction.

        Returns ``None`` if the trigger had already fired.
        """
        fired_at = at or datetime.now()
        stamp = _ts(fired_at)
        with self._conn:
            cur = self._conn.execute(
                "UPDATE triggers SET last_fired_at = ? "
                "WHERE id = ? AND last_fired_at IS NULL",
                (stamp, trigger_id),
            )
            if cur.rowcount == 0:
                return None
            cur = self._conn.execute(
                "INSERT INTO trigger_events "
                "(trigger_id, snapshot_id, created_at) VALUES (?, ?, ?)",
                (trigger_id, snapshot_id, stamp),
            )
        return TriggerEvent(
            id=cast(int, cur.lastrowid),
            trigger_id=trigger_id,
            snapshot_id=snapshot_id,
            created_at=fired_at,
        )

    def get_trigger_events(
        self, trigger_id: int | None = None,
    ) -> list[TriggerEvent]:
        """Trigger events, optionally for one trigger, oldest first."""
        sql = (
            "SELECT id, trigger_id, snapshot_id, created_at "
            "FROM trigger_events"
        )
        params: tuple[Any, ...] = ()
        if trigger_id is not None:
            sql += " WHERE trigger_id = ?"
            params = (trigger_id,)
        rows = self._conn.execute(sql + " ORDER BY id", params).fetchall()
        return [
            TriggerEvent(
                id=r[0],
                trigger_id=r[1],
                snapshot_id=r[2],
                created_at=datetime.fromisoformat(r[3]),
            )
            for r in rows
        ]
