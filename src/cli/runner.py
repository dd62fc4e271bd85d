# src/cli/runner.py

"""Headless CLI commands over the extraction core."""

import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.errors import ItemNotFoundError
from src.models.snapshot import STATUS_ERROR, STATUS_MISSING, STATUS_OK
from src.scrapers.dynamic_extractor import DynamicExtractor
from src.scrapers.rendering_engine import PlaywrightEngine
from src.scrapers.static_extractor import StaticExtractor
from src.services.capture_recorder import CaptureRecorder
from src.services.extraction_pipeline import ExtractionPipeline, RunSummary
from src.services.failure_reporter import FailureReporter
from src.services.repair_client import HttpRepairCollaborator
from src.services.repair_orchestrator import RepairOrchestrator, RepairResult
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)

_STATUS_STYLE: dict[str, str] = {
    STATUS_OK: "[green]ok[/green]",
    STATUS_MISSING: "[yellow]missing[/yellow]",
    STATUS_ERROR: "[red]error[/red]",
}


def _print_run_table(summary: RunSummary, db: TrackerDB) -> None:
    """Render a Rich table of one run's outcomes to stdout."""
    table = Table(
        title="Extraction Run",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Item", style="dim", width=6)
    table.add_column("Name", max_width=40)
    table.add_column("Status", justify="center")
    table.add_column("Tier", style="magenta")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Triggers", justify="center")

    for outcome in summary.outcomes:
        item = db.get_tracked_item(outcome.item_id)
        table.add_row(
            str(item.id),
            item.name[:40],
            _STATUS_STYLE.get(outcome.status, outcome.status),
            outcome.tier,
            outcome.snapshot.value_raw or "—",
            str(len(outcome.fired)) if outcome.fired else "—",
        )

    Console().print(table)


def _repair_orchestrator(db: TrackerDB) -> RepairOrchestrator:
    return RepairOrchestrator(db, HttpRepairCollaborator())


def run_extraction(
    item_ids: list[int] | None = None,
    db_path: Path | None = None,
) -> int:
    """Run the pipeline once; exit code 1 if any item errored."""
    db = TrackerDB(db_path)
    engine = PlaywrightEngine()
    try:
        if item_ids:
            try:
                items = [db.get_tracked_item(i) for i in item_ids]
            except ItemNotFoundError as exc:
                _err.print(f"[red]{exc}[/red]")
                return 1
        else:
            items = db.list_tracked_items(active_only=True)

        if not items:
            _err.print("[yellow]No active tracked items.[/yellow]")
            return 0

        _err.print(f"[bold]Extracting {len(items)} item(s)...[/bold]")
        pipeline = ExtractionPipeline(
            db,
            StaticExtractor(),
            DynamicExtractor(engine),
            repairer=_repair_orchestrator(db),
        )
        summary = pipeline.run(items)

        _err.print(
            f"[green]✓ {summary.ok_count} ok[/green], "
            f"[yellow]{summary.missing_count} missing[/yellow], "
            f"[red]{summary.error_count} error[/red], "
            f"{summary.fired_count} trigger(s) fired"
        )
        _print_run_table(summary, db)
        return 1 if summary.error_count else 0
    finally:
        engine.stop()
        db.close()


def _print_repair(result: RepairResult) -> None:
    if result.repaired and result.item and result.snapshot:
        _err.print(
            f"[green]✓ Item {result.item_id} repaired:[/green] "
            f"selector [bold]{result.item.selector}[/bold] "
            f"→ {result.snapshot.value_raw!r}"
        )
    else:
        _err.print(
            f"[yellow]No viable repair for item {result.item_id}: "
            f"{result.reason}[/yellow]"
        )


def run_report_failure(
    item_id: int,
    repair: bool = False,
    db_path: Path | None = None,
) -> int:
    """Record one failure; optionally repair when the threshold is crossed."""
    db = TrackerDB(db_path)
    try:
        report = FailureReporter(db).report_failure(item_id)
        _err.print(
            f"Item {item_id}: {report.consecutive_failures} consecutive "
            f"failure(s), should_repair={report.should_repair}"
        )
        if repair and report.should_repair:
            result = _repair_orchestrator(db).repair(item_id)
            _print_repair(result)
            return 0 if result.repaired else 2
        return 0
    except ItemNotFoundError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()


def run_record_capture(
    item_id: int,
    value_raw: str,
    db_path: Path | None = None,
) -> int:
    """Record a value captured outside the batch run."""
    db = TrackerDB(db_path)
    try:
        result = CaptureRecorder(db).record_capture(item_id, value_raw)
    except (ItemNotFoundError, ValueError) as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()

    numeric = result.snapshot.value_numeric
    _err.print(
        f"[green]✓ Item {item_id} captured:[/green] "
        f"{result.snapshot.value_raw!r}"
        + (f" → {numeric}" if numeric is not None else "")
    )
    for event in result.fired:
        _err.print(f"[bold magenta]Trigger {event.trigger_id} fired[/]")
    return 0


def run_repair(item_id: int, db_path: Path | None = None) -> int:
    """Directly request a selector repair for one item."""
    db = TrackerDB(db_path)
    try:
        result = _repair_orchestrator(db).repair(item_id)
    except ItemNotFoundError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()
    _print_repair(result)
    return 0 if result.repaired else 2


def run_import_items(filepath: Path, db_path: Path | None = None) -> int:
    """Load tracked items and triggers from a JSON file."""
    from src.storage.item_loader import load_items_file

    if not filepath.exists():
        _err.print(f"[red]File not found: {filepath}[/red]")
        return 1
    db = TrackerDB(db_path)
    try:
        count = load_items_file(db, filepath)
    finally:
        db.close()
    _err.print(f"[green]✓ Imported {count} item(s)[/green]")
    return 0 if count else 1


def run_history(
    item_id: int,
    limit: int = 20,
    db_path: Path | None = None,
) -> int:
    """Print an item's most recent snapshots."""
    db = TrackerDB(db_path)
    try:
        item = db.get_tracked_item(item_id)
        snapshots = db.get_snapshots(item_id, limit=limit)
    except ItemNotFoundError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()

    table = Table(
        title=f"History: {item.name}",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("Taken at", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Raw")
    table.add_column("Numeric", justify="right", style="green")
    for snap in snapshots:
        table.add_row(
            snap.taken_at.strftime("%Y-%m-%d %H:%M:%S"),
            _STATUS_STYLE.get(snap.status, snap.status),
            snap.value_raw or "—",
            (
                str(snap.value_numeric)
                if snap.value_numeric is not None
                else "—"
            ),
        )
    Console().print(table)
    return 0


def run_health_check(db_path: Path | None = None) -> int:
    """Print the health of every tracked item."""
    from src.services.health_checker import HealthChecker

    db = TrackerDB(db_path)
    try:
        results = HealthChecker(db).check_all()
    finally:
        db.close()

    table = Table(
        title="Tracked Item Health",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Item", style="bold")
    table.add_column("Name", max_width=40)
    table.add_column("Status", justify="center")
    table.add_column("Last success", style="dim")
    table.add_column("Last value", justify="right")
    table.add_column("Notes", style="dim")

    any_failing = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status in ("degraded", "new"):
            status = f"[yellow]⚠️  {r.status.upper()}[/yellow]"
        elif r.status == "inactive":
            status = "[dim]PAUSED[/dim]"
        else:
            status = "[red]❌ FAILING[/red]"
            any_failing = True

        last_success = (
            r.last_success_at.strftime("%Y-%m-%d %H:%M")
            if r.last_success_at
            else "—"
        )
        table.add_row(
            str(r.item_id),
            r.name[:40],
            status,
            last_success,
            r.last_value or "—",
            r.message,
        )

    Console().print(table)
    return 1 if any_failing else 0


def run_trigger_events(
    trigger_id: int,
    limit: int = 50,
    db_path: Path | None = None,
) -> int:
    """Print a trigger's most recent firings, newest first."""
    db = TrackerDB(db_path)
    try:
        trigger = db.get_trigger(trigger_id)
        events = db.get_trigger_events(trigger_id)[::-1][:limit]
        readings = {e.id: db.get_snapshot(e.snapshot_id) for e in events}
    except LookupError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()

    table = Table(
        title=(
            f"Trigger {trigger.id}: {trigger.comparison} "
            f"{trigger.threshold} (item {trigger.tracked_item_id})"
        ),
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("Event", style="dim")
    table.add_column("Fired at")
    table.add_column("Snapshot", style="dim")
    table.add_column("Value", justify="right", style="green")
    for event in events:
        snap = readings[event.id]
        table.add_row(
            str(event.id),
            event.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(event.snapshot_id),
            snap.value_raw if snap is not None else "—",
        )
    Console().print(table)
    return 0
